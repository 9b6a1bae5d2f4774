"""Create the diary / date_weather tables and their date indexes"""
import asyncio
from app.database import init_db


async def main():
    print("Initializing weather diary database...")
    await init_db()
    print("Tables diary, date_weather are ready.")


if __name__ == "__main__":
    asyncio.run(main())
