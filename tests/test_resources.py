"""Tests for the xcode-cloud:// MCP resources."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import make_build_run
from xcode_cloud_mcp.errors import APIError
from xcode_cloud_mcp.resources import (
    build_run_resource,
    product_resource,
    products_resource,
    workflow_resource,
)


def product(product_id: str, name: str):
    return {
        "type": "ciProducts",
        "id": product_id,
        "attributes": {"name": name, "productType": "APP"},
    }


def workflow(workflow_id: str, name: str):
    return {
        "type": "ciWorkflows",
        "id": workflow_id,
        "attributes": {"name": name, "description": f"{name} workflow", "isEnabled": True},
    }


@pytest.fixture
def mock_client(mocker):
    client = Mock()
    client.products.list = AsyncMock(return_value=[product("p1", "MyApp")])
    client.products.get_by_id = AsyncMock(return_value=product("p1", "MyApp"))
    client.workflows.list_for_product = AsyncMock(return_value=[workflow("w1", "CI")])
    client.workflows.get_by_id = AsyncMock(return_value=workflow("w1", "CI"))
    client.builds.get_by_id = AsyncMock(return_value=make_build_run("b1", "RUNNING"))
    mocker.patch("xcode_cloud_mcp.resources.get_client", return_value=client)
    return client


class TestProductsResource:
    @pytest.mark.asyncio
    async def test_lists_products_and_workflows(self, mock_client) -> None:
        entries = json.loads(await products_resource())

        assert entries == [
            {
                "uri": "xcode-cloud://product/p1",
                "name": "MyApp",
                "description": "Xcode Cloud product: APP",
            },
            {
                "uri": "xcode-cloud://workflow/w1",
                "name": "MyApp / CI",
                "description": "CI workflow",
            },
        ]

    @pytest.mark.asyncio
    async def test_failing_workflow_listing_is_skipped(self, mock_client) -> None:
        mock_client.products.list.return_value = [product("p1", "Broken"), product("p2", "Ok")]
        mock_client.workflows.list_for_product.side_effect = [
            APIError(403, "API Error (403): Forbidden: no access"),
            [workflow("w2", "Nightly")],
        ]

        entries = json.loads(await products_resource())

        assert [e["uri"] for e in entries] == [
            "xcode-cloud://product/p1",
            "xcode-cloud://product/p2",
            "xcode-cloud://workflow/w2",
        ]

    @pytest.mark.asyncio
    async def test_product_listing_failure_propagates(self, mock_client) -> None:
        mock_client.products.list.side_effect = APIError(401, "API Error (401): Unauthorized: x")

        with pytest.raises(APIError):
            await products_resource()


class TestSingleResources:
    @pytest.mark.asyncio
    async def test_product_includes_workflow_links(self, mock_client) -> None:
        body = json.loads(await product_resource("p1"))

        assert body["name"] == "MyApp"
        assert body["workflows"][0]["uri"] == "xcode-cloud://workflow/w1"

    @pytest.mark.asyncio
    async def test_workflow(self, mock_client) -> None:
        body = json.loads(await workflow_resource("w1"))

        assert body["id"] == "w1"
        mock_client.workflows.get_by_id.assert_awaited_once_with("w1")

    @pytest.mark.asyncio
    async def test_build_run(self, mock_client) -> None:
        body = json.loads(await build_run_resource("b1"))

        assert body["executionProgress"] == "RUNNING"
