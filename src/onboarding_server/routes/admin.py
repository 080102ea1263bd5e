"""Admin endpoints — flow definition management.

Protected by the ``ADMIN_API_KEY`` setting.  Every request must include an
``X-Admin-Key`` header whose value matches the configured key.  Returns 401
if missing, 403 if wrong.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from onboarding_flows.definitions import FlowDefinitionStore

from onboarding_server.dependencies import get_definitions, require_admin_key

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)],
)


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class FlowList(BaseModel):
    flows: list[str]
    templates: list[str]


class CreateFlowRequest(BaseModel):
    """Body for POST /admin/flows."""
    flow_name: str = Field(min_length=1)
    template_name: str | None = None


class SectionsPayload(BaseModel):
    """Section dicts with camelCase keys, as stored."""
    sections: list[dict[str, Any]]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/flows")
async def list_flows(
    definitions: FlowDefinitionStore = Depends(get_definitions),
) -> FlowList:
    return FlowList(
        flows=await definitions.list_flows(),
        templates=definitions.list_templates(),
    )


@router.post("/flows", status_code=201)
async def create_flow(
    body: CreateFlowRequest,
    definitions: FlowDefinitionStore = Depends(get_definitions),
) -> dict:
    """Create a flow, optionally seeded from a template.

    Raises 409 if the name is taken, 404 for an unknown template.
    """
    await definitions.create_flow(body.flow_name, template=body.template_name)
    return {"flow_name": body.flow_name}


@router.delete("/flows/{flow_name}", status_code=204)
async def delete_flow(
    flow_name: str,
    definitions: FlowDefinitionStore = Depends(get_definitions),
) -> None:
    await definitions.delete_flow(flow_name)


@router.get("/flows/{flow_name}/sections")
async def get_sections(
    flow_name: str,
    definitions: FlowDefinitionStore = Depends(get_definitions),
) -> SectionsPayload:
    return SectionsPayload(sections=await definitions.raw_sections(flow_name))


@router.patch("/flows/{flow_name}/sections")
async def update_sections(
    flow_name: str,
    body: SectionsPayload,
    definitions: FlowDefinitionStore = Depends(get_definitions),
) -> SectionsPayload:
    """Apply section deltas: ``_delete`` removes, known ids merge, new ids append.

    The merged flow is validated first; an invalid result (e.g. duplicate
    question aliases) returns 400 and nothing is written.
    """
    flow = await definitions.update_sections(flow_name, body.sections)
    return SectionsPayload(
        sections=[
            s.model_dump(by_alias=True, exclude_none=True) for s in flow.sections
        ],
    )
