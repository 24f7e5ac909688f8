"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from scribe_engine.config import get_settings
from scribe_engine.mapping import GenericMapper
from scribe_engine.routers import schema, sessions
from scribe_engine.schema import (
    SchemaDefinition,
    SchemaDefinitionError,
    SchemaParser,
    load_schema_definition,
)
from scribe_engine.services.scribe_api import ScribeApiClient
from scribe_engine.services.session import SessionRegistry

logger = logging.getLogger(__name__)


def _load_schema_definition(path: str) -> SchemaDefinition:
    try:
        return load_schema_definition(path)
    except SchemaDefinitionError:
        logger.exception("Schema definition could not be loaded; starting with no sections.")
        return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    schema_definition = _load_schema_definition(settings.schema_definition_path)
    schema_parser = SchemaParser(schema_definition)

    app.state.settings = settings
    app.state.schema_definition = schema_definition
    app.state.schema_parser = schema_parser
    app.state.mapper = GenericMapper(schema_parser)
    app.state.classification_client = ScribeApiClient.from_settings(settings, schema_definition)
    app.state.sessions = SessionRegistry()
    logger.info("scribe.startup schemas=%d", len(schema_parser.schema_names()))
    yield
    await app.state.sessions.close_all()


app = FastAPI(title="Scribe Engine API", version="0.1.0", lifespan=lifespan)

app.include_router(schema.router, tags=["schemas"])
app.include_router(sessions.router, tags=["sessions"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
