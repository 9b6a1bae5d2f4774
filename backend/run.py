"""Start the Weather Diary API"""

import uvicorn

from app.config import settings


if __name__ == "__main__":
    # 天气接口密钥缺失时尽早失败，避免 uvicorn 起来后才在 startup 里报错
    settings.require_weather_key()
    uvicorn.run(
        "app.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.backend_reload,
    )
