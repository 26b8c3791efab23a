import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lemons_copilot.api.widget import router as widget_router
from lemons_copilot.core.config import settings
from lemons_copilot.wiring.dependencies import close_clients


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("session_id", "service_id", "user_id", "operation", "slug", "status", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.getLogger(__name__).info("Widget API started", extra={"reason": settings.ENV})
    yield
    await close_clients()


app = FastAPI(title="Lemons Copilot", version="1.0.0", lifespan=lifespan)

app.include_router(widget_router, tags=["widget"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
