import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from xcode_cloud_mcp import orchestration
from xcode_cloud_mcp.client import AppStoreConnectClient, create_client_from_env
from xcode_cloud_mcp.models import (
    CiAction,
    CiBranchStartCondition,
    CreateWorkflowParams,
    UpdateWorkflowParams,
)
from xcode_cloud_mcp.transformer import (
    attributes_of,
    format_artifacts,
    format_build_action,
    format_build_run,
    format_build_run_summary,
    format_git_reference,
    format_product,
    format_repository,
    format_version,
    format_workflow,
    format_workflow_summary,
    issue_counts_of,
)
from xcode_cloud_mcp.uri_parser import (
    parse_build_run_id,
    parse_product_id,
    parse_workflow_id,
)

logger = logging.getLogger(__name__)

# Create a tools instance
xcode_cloud_tools = FastMCP("Xcode Cloud Tools")

# Tool argument names are camelCase to match the upstream attribute names that
# existing MCP clients already send.

_client: Optional[AppStoreConnectClient] = None


def set_client(client: Optional[AppStoreConnectClient]) -> None:
    """Install the client used by every tool. The server does this at startup."""
    global _client
    _client = client


def get_client() -> AppStoreConnectClient:
    """Return the shared client, creating it from the environment on first use."""
    global _client
    if _client is None:
        _client = create_client_from_env()
    return _client


def _tool_error(action: str, error: Exception) -> ToolError:
    """Log a failed upstream call and wrap it so the client sees an ``isError`` result."""
    logger.warning("%s: %s", action, error)
    return ToolError(f"{action}: {error}")


# --- Discovery ---


@xcode_cloud_tools.tool()
async def list_products(limit: Optional[int] = None) -> dict:
    """List all Xcode Cloud products (repositories) associated with your Apple Developer account.

    Each product represents a repository configured for Xcode Cloud.
    `limit` caps the number of products returned.
    """
    try:
        products = await get_client().products.list(limit)
    except Exception as e:
        raise _tool_error("Error listing products", e) from e

    formatted = [format_product(p) for p in products]
    return {"status": "success", "products": formatted, "total": len(formatted)}


@xcode_cloud_tools.tool()
async def list_workflows(productId: str, limit: Optional[int] = None) -> dict:
    """List all Xcode Cloud workflows for a specific product.

    `productId` is a product ID or resource URI (e.g. "xcode-cloud://product/abc123").
    Workflows define the build, test, and deployment configuration.
    """
    try:
        product_id = parse_product_id(productId)
        workflows = await get_client().workflows.list_for_product(product_id, limit)
    except Exception as e:
        raise _tool_error("Error listing workflows", e) from e

    formatted = [format_workflow_summary(w) for w in workflows]
    return {"status": "success", "workflows": formatted, "total": len(formatted)}


@xcode_cloud_tools.tool()
async def get_workflow(workflowId: str) -> dict:
    """Get detailed information about a specific Xcode Cloud workflow including its configuration.

    `workflowId` is a workflow ID or resource URI (e.g. "xcode-cloud://workflow/abc123").
    """
    try:
        workflow = await get_client().workflows.get_by_id(parse_workflow_id(workflowId))
    except Exception as e:
        raise _tool_error("Error getting workflow", e) from e

    return {"status": "success", **format_workflow(workflow)}


@xcode_cloud_tools.tool()
async def create_workflow(productId: Optional[str] = None) -> dict:
    """Gather all information required to create an Xcode Cloud workflow.

    Without `productId`, returns the available products to choose from. With it,
    returns the product, its repository, existing workflows and the available
    Xcode and macOS versions. Use create_workflow_with_actions to actually
    create the workflow once you have all required IDs.
    """
    try:
        client = get_client()
        if not productId:
            products = await client.products.list()
            return {
                "status": "needs_product",
                "message": "Select a product to create a workflow for.",
                "availableProducts": [
                    {
                        "id": p.get("id"),
                        "name": attributes_of(p).get("name"),
                        "productType": attributes_of(p).get("productType"),
                    }
                    for p in products
                ],
                "nextStep": "Call create_workflow with productId parameter",
            }

        product_id = parse_product_id(productId)
        product = await client.products.get_by_id(product_id)
        workflows = await client.workflows.list_for_product(product_id)
        xcode_versions = await client.xcode_versions.list(10)
        mac_os_versions = await client.mac_os_versions.list(10)
    except Exception as e:
        raise _tool_error("Error gathering workflow info", e) from e

    primary_repositories = (
        (product.get("relationships") or {}).get("primaryRepositories") or {}
    ).get("data") or []
    repository_id = primary_repositories[0].get("id") if primary_repositories else None
    product_name = attributes_of(product).get("name")

    return {
        "status": "ready",
        "message": "Use create_workflow_with_actions with the following IDs to create a workflow.",
        "product": {"id": product.get("id"), "name": product_name},
        "existingWorkflows": [
            {
                "id": w.get("id"),
                "name": attributes_of(w).get("name"),
                "isEnabled": attributes_of(w).get("isEnabled"),
            }
            for w in workflows
        ],
        "repositoryId": repository_id or "Use get_repository to find this",
        "availableXcodeVersions": [format_version(v) for v in xcode_versions],
        "availableMacOsVersions": [format_version(v) for v in mac_os_versions],
        "exampleUsage": {
            "tool": "create_workflow_with_actions",
            "arguments": {
                "productId": product_id,
                "repositoryId": repository_id or "YOUR_REPOSITORY_ID",
                "xcodeVersionId": xcode_versions[0].get("id")
                if xcode_versions
                else "YOUR_XCODE_VERSION_ID",
                "macOsVersionId": mac_os_versions[0].get("id")
                if mac_os_versions
                else "YOUR_MACOS_VERSION_ID",
                "name": f"{product_name} CI",
                "description": "CI workflow with tests",
                "containerFilePath": "YourApp.xcodeproj",
                "actions": [
                    {
                        "name": "Build - iOS",
                        "actionType": "BUILD",
                        "platform": "IOS",
                        "scheme": "YourScheme",
                        "destination": "ANY_IOS_SIMULATOR",
                    },
                    {
                        "name": "Test - iOS",
                        "actionType": "TEST",
                        "platform": "IOS",
                        "scheme": "YourScheme",
                        "destination": "ANY_IOS_SIMULATOR",
                    },
                ],
            },
        },
    }


@xcode_cloud_tools.tool()
async def get_repository(productId: str) -> dict:
    """Get the SCM repository information for a product.

    Returns the repository ID needed for creating workflows.
    """
    try:
        product_id = parse_product_id(productId)
        repository = await get_client().repositories.get_for_product(product_id)
    except Exception as e:
        raise _tool_error("Error getting repository", e) from e

    if repository is None:
        raise ToolError(f"No repository found for this product ({product_id})")
    return {"status": "success", "repository": format_repository(repository)}


@xcode_cloud_tools.tool()
async def list_git_references(repositoryId: str, limit: Optional[int] = None) -> dict:
    """List the branches and tags of a repository.

    The returned IDs can be passed as `gitReferenceId` to start_build.
    """
    try:
        references = await get_client().repositories.list_git_references(repositoryId, limit)
    except Exception as e:
        raise _tool_error("Error listing git references", e) from e

    formatted = [format_git_reference(r) for r in references]
    return {"status": "success", "gitReferences": formatted, "total": len(formatted)}


# --- Builds ---


@xcode_cloud_tools.tool()
async def start_build(workflowId: str, gitReferenceId: Optional[str] = None) -> dict:
    """Trigger a new Xcode Cloud build for a specific workflow.

    Optionally specify the ID of a git reference (branch or tag) to build; the
    workflow's default branch is used otherwise.
    """
    try:
        build_run = await get_client().builds.start(
            parse_workflow_id(workflowId), gitReferenceId
        )
    except Exception as e:
        raise _tool_error("Error starting build", e) from e

    attributes = attributes_of(build_run)
    return {
        "status": "success",
        "id": build_run.get("id"),
        "number": attributes.get("number"),
        "executionProgress": attributes.get("executionProgress"),
        "startReason": attributes.get("startReason"),
        "createdDate": attributes.get("createdDate"),
        "sourceCommit": attributes.get("sourceCommit"),
    }


@xcode_cloud_tools.tool()
async def start_build_and_wait(
    workflowId: str,
    gitReferenceId: Optional[str] = None,
    pollIntervalMs: int = orchestration.DEFAULT_POLL_INTERVAL_MS,
    timeoutMs: int = orchestration.DEFAULT_TIMEOUT_MS,
) -> dict:
    """Start an Xcode Cloud build and wait for it to complete.

    The server polls the build status internally (every `pollIntervalMs`,
    default 30 seconds) for up to `timeoutMs` (default 1 hour). Waiting stops
    as soon as the next poll would end past `timeoutMs`, so with the defaults a
    build that is still running is reported after about 59.5 minutes, with
    `totalDurationMs` below `timeoutMs`. That is not an error: the result has
    `timeoutExceeded: true` and the build `id` can be used with get_build_run
    to keep checking.
    """
    try:
        result = await orchestration.start_build_and_wait(
            get_client().builds,
            parse_workflow_id(workflowId),
            gitReferenceId,
            poll_interval_ms=pollIntervalMs,
            timeout_ms=timeoutMs,
        )
    except Exception as e:
        raise _tool_error("Error in start_build_and_wait", e) from e

    return {
        "status": "success",
        **format_build_run(result["build_run"]),
        "timeoutExceeded": result["timeout_exceeded"],
        "totalDurationMs": result["total_duration_ms"],
        "pollCount": result["poll_count"],
    }


@xcode_cloud_tools.tool()
async def cancel_build(buildRunId: str) -> dict:
    """Cancel a running Xcode Cloud build. Only PENDING or RUNNING builds can be canceled."""
    try:
        build_run_id = parse_build_run_id(buildRunId)
        await get_client().builds.cancel(build_run_id)
    except Exception as e:
        raise _tool_error("Error canceling build", e) from e

    return {"status": "success", "message": f"Build {build_run_id} has been canceled."}


@xcode_cloud_tools.tool()
async def get_build_run(buildRunId: str) -> dict:
    """Get the current status and details of a build run.

    Includes execution progress, completion status, commits and issue counts.
    """
    try:
        build_run = await get_client().builds.get_by_id(parse_build_run_id(buildRunId))
    except Exception as e:
        raise _tool_error("Error getting build run", e) from e

    return {"status": "success", **format_build_run(build_run)}


@xcode_cloud_tools.tool()
async def list_build_runs(workflowId: str, limit: Optional[int] = None) -> dict:
    """List recent build runs for a workflow, newest first."""
    try:
        build_runs = await get_client().builds.list_for_workflow(
            parse_workflow_id(workflowId), limit
        )
    except Exception as e:
        raise _tool_error("Error listing build runs", e) from e

    formatted = [format_build_run_summary(r) for r in build_runs]
    return {"status": "success", "buildRuns": formatted, "total": len(formatted)}


@xcode_cloud_tools.tool()
async def get_build_actions(buildRunId: str) -> dict:
    """Get the actions (build, test, analyze, archive) of a build run with their status."""
    try:
        actions = await get_client().builds.get_actions(parse_build_run_id(buildRunId))
    except Exception as e:
        raise _tool_error("Error getting build actions", e) from e

    return {"status": "success", "actions": [format_build_action(a) for a in actions]}


# --- Results ---


@xcode_cloud_tools.tool()
async def get_build_logs(buildRunId: str) -> dict:
    """Retrieve the log files, archives and other artifacts of a build run as download URLs."""
    try:
        artifacts = await get_client().artifacts.get_for_build_run(
            parse_build_run_id(buildRunId)
        )
    except Exception as e:
        raise _tool_error("Error getting build artifacts", e) from e

    logs = format_artifacts(artifacts["logs"])
    archives = format_artifacts(artifacts["archives"])
    other = format_artifacts(artifacts["other"], include_type=True)
    return {
        "status": "success",
        "message": "Artifacts available. Use the downloadUrl to retrieve files.",
        "logs": logs,
        "archives": archives,
        "other": other,
        "total": len(logs) + len(archives) + len(other),
    }


@xcode_cloud_tools.tool()
async def get_build_issues(buildRunId: str) -> dict:
    """Get issue counts (warnings, errors, analyzer warnings, test failures) of a build run.

    Detailed issue listings are not exposed by the API; download the logs with
    get_build_logs for details.
    """
    try:
        build_run = await get_client().builds.get_by_id(parse_build_run_id(buildRunId))
    except Exception as e:
        raise _tool_error("Error getting build issues", e) from e

    return {
        "status": "success",
        "buildRunId": buildRunId,
        "buildNumber": attributes_of(build_run).get("number"),
        "issueCounts": issue_counts_of(build_run),
        "message": "Issue counts from build run. For detailed logs, use get_build_logs to download log files.",
    }


@xcode_cloud_tools.tool()
async def get_test_results(buildRunId: str) -> dict:
    """Get the test failure count of a build run and its result bundles."""
    try:
        client = get_client()
        build_run_id = parse_build_run_id(buildRunId)
        build_run = await client.builds.get_by_id(build_run_id)
        artifacts = await client.artifacts.get_for_build_run(build_run_id)
    except Exception as e:
        raise _tool_error("Error getting test results", e) from e

    test_failures = issue_counts_of(build_run).get("testFailures") or 0
    return {
        "status": "success",
        "buildRunId": buildRunId,
        "buildNumber": attributes_of(build_run).get("number"),
        "testFailures": test_failures,
        "resultBundles": [
            {
                "id": a.get("id"),
                "fileName": attributes_of(a).get("fileName"),
                "downloadUrl": attributes_of(a).get("downloadUrl"),
            }
            for a in artifacts["resultBundles"]
        ],
        "message": (
            f"Found {test_failures} test failure(s). Download result bundles for detailed test information."
            if test_failures > 0
            else "No test failures detected."
        ),
    }


@xcode_cloud_tools.tool()
async def get_test_artifacts(buildRunId: str) -> dict:
    """Get test artifacts (screenshots, videos, result bundles, test products) of a build run.

    These are especially useful for diagnosing failed UI tests.
    """
    try:
        artifacts = await get_client().artifacts.get_for_build_run(
            parse_build_run_id(buildRunId)
        )
    except Exception as e:
        raise _tool_error("Error getting test artifacts", e) from e

    formatted = {
        bucket: format_artifacts(artifacts[bucket])  # type: ignore[literal-required]
        for bucket in ("screenshots", "videos", "resultBundles", "testProducts")
    }
    total = sum(len(items) for items in formatted.values())
    return {
        "status": "success",
        **formatted,
        "total": total,
        "message": "Use the downloadUrl to retrieve test artifacts."
        if total > 0
        else "No test artifacts found for this build run.",
    }


# --- Workflow management ---


@xcode_cloud_tools.tool()
async def list_xcode_versions(limit: Optional[int] = None) -> dict:
    """List the Xcode versions available to Xcode Cloud workflows.

    Use these IDs when creating or updating workflows.
    """
    try:
        versions = await get_client().xcode_versions.list(limit)
    except Exception as e:
        raise _tool_error("Error listing Xcode versions", e) from e

    formatted = [format_version(v) for v in versions]
    return {"status": "success", "xcodeVersions": formatted, "total": len(formatted)}


@xcode_cloud_tools.tool()
async def list_macos_versions(limit: Optional[int] = None) -> dict:
    """List the macOS versions available to Xcode Cloud workflows.

    Use these IDs when creating or updating workflows.
    """
    try:
        versions = await get_client().mac_os_versions.list(limit)
    except Exception as e:
        raise _tool_error("Error listing macOS versions", e) from e

    formatted = [format_version(v) for v in versions]
    return {"status": "success", "macOsVersions": formatted, "total": len(formatted)}


@xcode_cloud_tools.tool()
async def list_compatible_macos_versions(xcodeVersionId: str) -> dict:
    """List the macOS versions compatible with a specific Xcode version."""
    try:
        versions = await get_client().xcode_versions.list_mac_os_versions(xcodeVersionId)
    except Exception as e:
        raise _tool_error("Error listing compatible macOS versions", e) from e

    formatted = [format_version(v) for v in versions]
    return {
        "status": "success",
        "xcodeVersionId": xcodeVersionId,
        "compatibleMacOsVersions": formatted,
        "total": len(formatted),
    }


@xcode_cloud_tools.tool()
async def get_test_destinations(xcodeVersionId: str) -> dict:
    """Get the test destinations (simulators and devices) available for an Xcode version.

    Use these when configuring TEST actions in workflows.
    """
    try:
        xcode_version = await get_client().xcode_versions.get_with_test_destinations(
            xcodeVersionId
        )
    except Exception as e:
        raise _tool_error("Error getting test destinations", e) from e

    destinations = attributes_of(xcode_version).get("testDestinations") or []
    return {
        "status": "success",
        "xcodeVersionId": xcodeVersionId,
        "xcodeVersion": attributes_of(xcode_version).get("name"),
        "testDestinations": destinations,
        "total": len(destinations),
    }


def _workflow_result(status: str, message: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
    attributes = attributes_of(workflow)
    return {
        "status": status,
        "message": message,
        "workflow": {
            "id": workflow.get("id"),
            "name": attributes.get("name"),
            "description": attributes.get("description"),
            "isEnabled": attributes.get("isEnabled"),
            "clean": attributes.get("clean"),
            "containerFilePath": attributes.get("containerFilePath"),
        },
    }


@xcode_cloud_tools.tool()
async def create_workflow_with_actions(
    productId: str,
    repositoryId: str,
    xcodeVersionId: str,
    macOsVersionId: str,
    name: str,
    description: str,
    containerFilePath: str,
    actions: List[CiAction],
    isEnabled: Optional[bool] = None,
    clean: Optional[bool] = None,
    branchStartCondition: Optional[CiBranchStartCondition] = None,
) -> dict:
    """Create a new Xcode Cloud workflow with its actions (BUILD, TEST, ANALYZE, ARCHIVE).

    Requires the product, SCM repository (see get_repository), Xcode version
    (see list_xcode_versions) and macOS version (see list_macos_versions or
    list_compatible_macos_versions) IDs. `containerFilePath` is the path of the
    .xcodeproj or .xcworkspace in the repository. New workflows are enabled and
    non-clean unless told otherwise.
    """
    params: CreateWorkflowParams = {
        "name": name,
        "description": description,
        "containerFilePath": containerFilePath,
        "repositoryId": repositoryId,
        "xcodeVersionId": xcodeVersionId,
        "macOsVersionId": macOsVersionId,
        "actions": actions,
    }
    if isEnabled is not None:
        params["isEnabled"] = isEnabled
    if clean is not None:
        params["clean"] = clean
    if branchStartCondition is not None:
        params["branchStartCondition"] = branchStartCondition

    try:
        created = await get_client().workflows.create(parse_product_id(productId), params)
    except Exception as e:
        raise _tool_error("Error creating workflow", e) from e

    return _workflow_result("created", "Workflow created successfully with actions.", created)


@xcode_cloud_tools.tool()
async def update_workflow(
    workflowId: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    isEnabled: Optional[bool] = None,
    clean: Optional[bool] = None,
    containerFilePath: Optional[str] = None,
    actions: Optional[List[CiAction]] = None,
    xcodeVersionId: Optional[str] = None,
    macOsVersionId: Optional[str] = None,
    branchStartCondition: Optional[CiBranchStartCondition] = None,
    clearStartConditions: bool = False,
) -> dict:
    """Update an existing Xcode Cloud workflow.

    Only the fields you pass are changed. Set `clearStartConditions` to remove
    both the branch and the manual branch start conditions; it cannot be
    combined with `branchStartCondition`.
    """
    if clearStartConditions and branchStartCondition is not None:
        raise ToolError(
            "Error updating workflow: pass either branchStartCondition or "
            "clearStartConditions, not both"
        )

    params: UpdateWorkflowParams = {}
    provided = {
        "name": name,
        "description": description,
        "isEnabled": isEnabled,
        "clean": clean,
        "containerFilePath": containerFilePath,
        "actions": actions,
        "xcodeVersionId": xcodeVersionId,
        "macOsVersionId": macOsVersionId,
        "branchStartCondition": branchStartCondition,
    }
    for key, value in provided.items():
        if value is not None:
            params[key] = value  # type: ignore[literal-required]
    if clearStartConditions:
        params["branchStartCondition"] = None
        params["manualBranchStartCondition"] = None

    try:
        updated = await get_client().workflows.update(parse_workflow_id(workflowId), params)
    except Exception as e:
        raise _tool_error("Error updating workflow", e) from e

    return _workflow_result("updated", "Workflow updated successfully.", updated)


@xcode_cloud_tools.tool()
async def delete_workflow(workflowId: str) -> dict:
    """Delete an Xcode Cloud workflow. This action cannot be undone."""
    try:
        workflow_id = parse_workflow_id(workflowId)
        await get_client().workflows.delete(workflow_id)
    except Exception as e:
        raise _tool_error("Error deleting workflow", e) from e

    return {
        "status": "deleted",
        "message": "Workflow deleted successfully.",
        "workflowId": workflow_id,
    }
