"""Compiled schema inspection routes."""

from fastapi import APIRouter, Depends, HTTPException, Path

from scribe_engine.dependencies import get_schema_parser
from scribe_engine.schema import SchemaParser
from scribe_engine.schemas.common import ApiResponse
from scribe_engine.schemas.schema import ParsedSchemaRead

router = APIRouter(prefix="/schemas")


@router.get("", response_model=ApiResponse[list[str]])
def list_schemas(parser: SchemaParser = Depends(get_schema_parser)) -> ApiResponse[list[str]]:
    """List the names of all compiled section schemas."""

    return ApiResponse(data=parser.schema_names())


@router.get("/{schema_name}", response_model=ApiResponse[ParsedSchemaRead])
def get_schema(
    schema_name: str = Path(..., min_length=1),
    parser: SchemaParser = Depends(get_schema_parser),
) -> ApiResponse[ParsedSchemaRead]:
    """Return one compiled schema tree."""

    parsed = parser.lookup(schema_name)
    if parsed is None:
        raise HTTPException(status_code=404, detail=f"Schema not found: {schema_name}")
    return ApiResponse(data=ParsedSchemaRead.model_validate(parsed, from_attributes=True))
