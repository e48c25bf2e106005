import uvicorn
from prometheus_fastapi_instrumentator import Instrumentator

from lending.application import create_app
from lending.core.config import get_settings
from lending.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
app = create_app(settings)
Instrumentator().instrument(app).expose(app, include_in_schema=False)


def run() -> None:
    uvicorn.run("lending.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
