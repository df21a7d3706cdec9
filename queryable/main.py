import logging

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from queryable.config import get_settings
from queryable.v1.endpoints import router as api_router

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

USAGE = """usage:

- Get the schema: GET /schema
- Items for any ID: GET /{id}
- Execute any query: GET /{id}/exec?query=YOUR_QUERY&binding=a&binding=b
- Any studio: GET /{id}/studio
- Import SQL into a studio: GET /{id}/studio?page=import
"""

app = FastAPI(
    title="Queryable API",
    description="SQL execution and query studio over per-ID duckdb stores",
    version="1.0.0",
)


@app.get("/", response_class=PlainTextResponse)
def read_root():
    return USAGE


app.include_router(api_router)


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
