"""Run the clip queue API with uvicorn"""

import uvicorn

from api.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
