"""
Forms Router

Built-in form definitions.

Endpoints:
    GET /forms - List available forms
    GET /forms/{form_code} - Form definition (sections and fields)
"""

from fastapi import APIRouter, Depends

from core.dependencies import get_form_definitions
from services.form.definitions import BuiltinFormDefinitions

router = APIRouter(prefix="/forms", tags=["Forms"])


@router.get("")
async def list_forms(definitions: BuiltinFormDefinitions = Depends(get_form_definitions)):
    return {"forms": definitions.available_forms()}


@router.get("/{form_code}")
async def get_form(
    form_code: str,
    definitions: BuiltinFormDefinitions = Depends(get_form_definitions),
):
    """404 for unknown form codes."""
    return definitions.load_schema(form_code).to_dict()
