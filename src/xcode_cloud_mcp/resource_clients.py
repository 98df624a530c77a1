"""Semantic clients for the Xcode Cloud resource families of App Store Connect."""

from typing import Any, Dict, List, Optional, cast

from xcode_cloud_mcp.base_client import BaseAPIClient
from xcode_cloud_mcp.models import (
    BuildArtifacts,
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
    CiMacOsVersion,
    CiProduct,
    CiWorkflow,
    CiXcodeVersion,
    CreateWorkflowParams,
    CreateWorkflowRequest,
    ScmGitReference,
    ScmRepository,
    StartBuildRunRequest,
    ToOneRelationship,
    UpdateWorkflowParams,
    UpdateWorkflowRequest,
)

# Artifact fileType -> BuildArtifacts bucket. Unlisted types land in "other".
ARTIFACT_BUCKETS: Dict[str, str] = {
    "LOG": "logs",
    "ARCHIVE": "archives",
    "XCODEBUILD_ARCHIVE": "archives",
    "SCREENSHOT": "screenshots",
    "VIDEO": "videos",
    "RESULT_BUNDLE": "resultBundles",
    "TEST_PRODUCTS": "testProducts",
}

_UPDATABLE_WORKFLOW_ATTRIBUTES = (
    "name",
    "description",
    "isEnabled",
    "clean",
    "containerFilePath",
    "actions",
    "branchStartCondition",
    "manualBranchStartCondition",
)


def _limit_params(limit: Optional[int]) -> Dict[str, str]:
    return {"limit": str(limit)} if limit else {}


def _to_one(resource_type: str, resource_id: str) -> ToOneRelationship:
    return {"data": {"type": resource_type, "id": resource_id}}


def classify_artifacts(artifacts: List[CiArtifact]) -> BuildArtifacts:
    """Sort artifacts into buckets by their ``fileType`` tag."""
    buckets: BuildArtifacts = {
        "logs": [],
        "archives": [],
        "screenshots": [],
        "videos": [],
        "resultBundles": [],
        "testProducts": [],
        "other": [],
    }
    for artifact in artifacts:
        file_type = artifact.get("attributes", {}).get("fileType", "")
        bucket = ARTIFACT_BUCKETS.get(file_type, "other")
        cast(Dict[str, List[CiArtifact]], buckets)[bucket].append(artifact)
    return buckets


class ProductsClient(BaseAPIClient):
    async def list(self, limit: Optional[int] = None) -> List[CiProduct]:
        response = await self.get("/v1/ciProducts", _limit_params(limit))
        return response["data"]

    async def get_by_id(self, product_id: str) -> CiProduct:
        response = await self.get(f"/v1/ciProducts/{product_id}")
        return response["data"]


class WorkflowsClient(BaseAPIClient):
    async def list_for_product(
        self, product_id: str, limit: Optional[int] = None
    ) -> List[CiWorkflow]:
        response = await self.get(
            f"/v1/ciProducts/{product_id}/workflows", _limit_params(limit)
        )
        return response["data"]

    async def get_by_id(self, workflow_id: str) -> CiWorkflow:
        response = await self.get(f"/v1/ciWorkflows/{workflow_id}")
        return response["data"]

    async def create(self, product_id: str, params: CreateWorkflowParams) -> CiWorkflow:
        """Create a workflow for a product.

        ``isEnabled`` defaults to True and ``clean`` to False. Start conditions
        are only sent when given.
        """
        attributes: Dict[str, Any] = {
            "name": params["name"],
            "description": params.get("description"),
            "isEnabled": params.get("isEnabled", True),
            "clean": params.get("clean", False),
            "containerFilePath": params["containerFilePath"],
            "actions": params["actions"],
        }
        if params.get("branchStartCondition"):
            attributes["branchStartCondition"] = params["branchStartCondition"]
        if params.get("manualBranchStartCondition"):
            attributes["manualBranchStartCondition"] = params["manualBranchStartCondition"]

        payload: CreateWorkflowRequest = {
            "data": {
                "type": "ciWorkflows",
                "attributes": attributes,
                "relationships": {
                    "product": _to_one("ciProducts", product_id),
                    "repository": _to_one("scmRepositories", params["repositoryId"]),
                    "xcodeVersion": _to_one("ciXcodeVersions", params["xcodeVersionId"]),
                    "macOsVersion": _to_one("ciMacOsVersions", params["macOsVersionId"]),
                },
            }
        }
        response = await self.post("/v1/ciWorkflows", payload)
        return response["data"]

    async def update(self, workflow_id: str, params: UpdateWorkflowParams) -> CiWorkflow:
        """Patch a workflow with only the fields present in ``params``.

        Omitted keys are left untouched upstream. A key explicitly set to None
        is sent as null, which clears composite fields such as start conditions.
        ``attributes`` and ``relationships`` are left out of the payload entirely
        when nothing was provided for them.
        """
        payload: UpdateWorkflowRequest = {"data": {"type": "ciWorkflows", "id": workflow_id}}

        attributes = {
            key: params[key]  # type: ignore[literal-required]
            for key in _UPDATABLE_WORKFLOW_ATTRIBUTES
            if key in params
        }
        if attributes:
            payload["data"]["attributes"] = attributes

        relationships: Dict[str, ToOneRelationship] = {}
        if params.get("xcodeVersionId"):
            relationships["xcodeVersion"] = _to_one("ciXcodeVersions", params["xcodeVersionId"])
        if params.get("macOsVersionId"):
            relationships["macOsVersion"] = _to_one("ciMacOsVersions", params["macOsVersionId"])
        if relationships:
            payload["data"]["relationships"] = relationships

        response = await self.patch(f"/v1/ciWorkflows/{workflow_id}", payload)
        return response["data"]

    async def delete(self, workflow_id: str) -> None:
        await self.delete_request(f"/v1/ciWorkflows/{workflow_id}")


class BuildsClient(BaseAPIClient):
    async def start(
        self, workflow_id: str, git_reference_id: Optional[str] = None
    ) -> CiBuildRun:
        """Start a build of a workflow, optionally on a specific branch or tag."""
        payload: StartBuildRunRequest = {
            "data": {
                "type": "ciBuildRuns",
                "relationships": {"workflow": _to_one("ciWorkflows", workflow_id)},
            }
        }
        if git_reference_id:
            payload["data"]["relationships"]["sourceBranchOrTag"] = _to_one(
                "scmGitReferences", git_reference_id
            )

        response = await self.post("/v1/ciBuildRuns", payload)
        return response["data"]

    async def cancel(self, build_run_id: str) -> None:
        await self.delete_request(f"/v1/ciBuildRuns/{build_run_id}")

    async def get_by_id(self, build_run_id: str) -> CiBuildRun:
        response = await self.get(f"/v1/ciBuildRuns/{build_run_id}")
        return response["data"]

    async def list_for_workflow(
        self, workflow_id: str, limit: Optional[int] = None
    ) -> List[CiBuildRun]:
        response = await self.get(
            f"/v1/ciWorkflows/{workflow_id}/buildRuns", _limit_params(limit)
        )
        return response["data"]

    async def get_actions(self, build_run_id: str) -> List[CiBuildAction]:
        response = await self.get(f"/v1/ciBuildRuns/{build_run_id}/actions")
        return response["data"]


class ArtifactsClient(BaseAPIClient):
    async def get_for_build_run(self, build_run_id: str) -> BuildArtifacts:
        response = await self.get(f"/v1/ciBuildRuns/{build_run_id}/artifacts")
        return classify_artifacts(response["data"])

    async def download(self, url: str) -> bytes:
        return await self.download_binary(url)


class XcodeVersionsClient(BaseAPIClient):
    async def list(self, limit: Optional[int] = None) -> List[CiXcodeVersion]:
        response = await self.get("/v1/ciXcodeVersions", _limit_params(limit))
        return response["data"]

    async def get_by_id(self, xcode_version_id: str) -> CiXcodeVersion:
        response = await self.get(f"/v1/ciXcodeVersions/{xcode_version_id}")
        return response["data"]

    async def get_with_test_destinations(self, xcode_version_id: str) -> CiXcodeVersion:
        response = await self.get(
            f"/v1/ciXcodeVersions/{xcode_version_id}",
            {"fields[ciXcodeVersions]": "name,version,testDestinations"},
        )
        return response["data"]

    async def list_mac_os_versions(
        self, xcode_version_id: str, limit: Optional[int] = None
    ) -> List[CiMacOsVersion]:
        """List the macOS versions an Xcode version can run on."""
        response = await self.get(
            f"/v1/ciXcodeVersions/{xcode_version_id}/macOsVersions", _limit_params(limit)
        )
        return response["data"]


class MacOsVersionsClient(BaseAPIClient):
    async def list(self, limit: Optional[int] = None) -> List[CiMacOsVersion]:
        response = await self.get("/v1/ciMacOsVersions", _limit_params(limit))
        return response["data"]

    async def get_by_id(self, mac_os_version_id: str) -> CiMacOsVersion:
        response = await self.get(f"/v1/ciMacOsVersions/{mac_os_version_id}")
        return response["data"]

    async def list_xcode_versions(
        self, mac_os_version_id: str, limit: Optional[int] = None
    ) -> List[CiXcodeVersion]:
        """List the Xcode versions available on a macOS version."""
        response = await self.get(
            f"/v1/ciMacOsVersions/{mac_os_version_id}/xcodeVersions", _limit_params(limit)
        )
        return response["data"]


class RepositoriesClient(BaseAPIClient):
    async def get_for_product(self, product_id: str) -> Optional[ScmRepository]:
        """Return the product's primary repository, or None if it has none."""
        response = await self.get(f"/v1/ciProducts/{product_id}/primaryRepositories")
        data = response["data"] or []
        return data[0] if data else None

    async def get_for_workflow(self, workflow_id: str) -> ScmRepository:
        response = await self.get(f"/v1/ciWorkflows/{workflow_id}/repository")
        return response["data"]

    async def get_by_id(self, repository_id: str) -> ScmRepository:
        response = await self.get(f"/v1/scmRepositories/{repository_id}")
        return response["data"]

    async def list_git_references(
        self, repository_id: str, limit: Optional[int] = None
    ) -> List[ScmGitReference]:
        response = await self.get(
            f"/v1/scmRepositories/{repository_id}/gitReferences", _limit_params(limit)
        )
        return response["data"]
