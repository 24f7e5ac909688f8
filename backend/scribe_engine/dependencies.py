"""FastAPI dependency providers backed by application state."""

from fastapi import Request

from scribe_engine.config import Settings
from scribe_engine.mapping import GenericMapper
from scribe_engine.schema import SchemaDefinition, SchemaParser
from scribe_engine.services.scribe_api import ClassificationClient
from scribe_engine.services.session import SessionRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_schema_parser(request: Request) -> SchemaParser:
    return request.app.state.schema_parser


def get_schema_definition(request: Request) -> SchemaDefinition:
    return request.app.state.schema_definition


def get_mapper(request: Request) -> GenericMapper:
    return request.app.state.mapper


def get_classification_client(request: Request) -> ClassificationClient:
    return request.app.state.classification_client


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions
