"""MCP resources exposing Xcode Cloud entities under ``xcode-cloud://`` URIs.

Importing this module registers the resources on the shared tools instance.
Each resource renders as pretty-printed JSON; failures propagate so the MCP
layer reports them as resource read errors.
"""

import json
import logging
from typing import Any

from xcode_cloud_mcp.tools import get_client, xcode_cloud_tools
from xcode_cloud_mcp.transformer import (
    format_build_run,
    format_product,
    format_workflow,
    format_workflow_summary,
)
from xcode_cloud_mcp.uri_parser import URI_SCHEME, resource_uri

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2)


@xcode_cloud_tools.resource(
    f"{URI_SCHEME}products",
    name="Xcode Cloud products",
    description="All Xcode Cloud products with links to their workflows",
    mime_type="application/json",
)
async def products_resource() -> str:
    client = get_client()
    entries = []
    for product in await client.products.list():
        attributes = product.get("attributes") or {}
        entries.append(
            {
                "uri": resource_uri("product", product["id"]),
                "name": attributes.get("name"),
                "description": f"Xcode Cloud product: {attributes.get('productType')}",
            }
        )
        try:
            workflows = await client.workflows.list_for_product(product["id"])
        except Exception as e:
            logger.warning("Skipping workflows of product %s: %s", product["id"], e)
            continue
        for workflow in workflows:
            workflow_attributes = workflow.get("attributes") or {}
            entries.append(
                {
                    "uri": resource_uri("workflow", workflow["id"]),
                    "name": f"{attributes.get('name')} / {workflow_attributes.get('name')}",
                    "description": workflow_attributes.get("description")
                    or "Xcode Cloud workflow",
                }
            )
    return _to_json(entries)


@xcode_cloud_tools.resource(
    f"{URI_SCHEME}product/{{product_id}}",
    name="Xcode Cloud product",
    description="A product and the workflows configured for it",
    mime_type="application/json",
)
async def product_resource(product_id: str) -> str:
    client = get_client()
    product = await client.products.get_by_id(product_id)
    workflows = await client.workflows.list_for_product(product_id)
    logger.debug("Read product %s with %d workflows", product_id, len(workflows))
    return _to_json(
        {
            **format_product(product),
            "workflows": [
                {**format_workflow_summary(w), "uri": resource_uri("workflow", w["id"])}
                for w in workflows
            ],
        }
    )


@xcode_cloud_tools.resource(
    f"{URI_SCHEME}workflow/{{workflow_id}}",
    name="Xcode Cloud workflow",
    description="Configuration of a single workflow",
    mime_type="application/json",
)
async def workflow_resource(workflow_id: str) -> str:
    workflow = await get_client().workflows.get_by_id(workflow_id)
    return _to_json(format_workflow(workflow))


@xcode_cloud_tools.resource(
    f"{URI_SCHEME}build-run/{{build_run_id}}",
    name="Xcode Cloud build run",
    description="Status snapshot of a single build run",
    mime_type="application/json",
)
async def build_run_resource(build_run_id: str) -> str:
    build_run = await get_client().builds.get_by_id(build_run_id)
    return _to_json(format_build_run(build_run))
