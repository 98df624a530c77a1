"""Data transformation utilities for the Xcode Cloud MCP tools.

This module converts the JSON:API resources returned by App Store Connect
into the flat, compact dictionaries handed back to the agent. Attributes that
are absent upstream come out as None instead of raising.

Public API
- format_product / format_workflow / format_workflow_summary
- format_build_run / format_build_run_summary / format_build_action
- format_artifact / format_version / format_repository / format_git_reference
"""

from typing import Any, Dict, List, Mapping

from xcode_cloud_mcp.models import (
    CiArtifact,
    CiBuildAction,
    CiBuildRun,
    CiProduct,
    CiWorkflow,
    IssueCounts,
    ScmGitReference,
    ScmRepository,
)

EMPTY_ISSUE_COUNTS: IssueCounts = {
    "analyzerWarnings": 0,
    "errors": 0,
    "testFailures": 0,
    "warnings": 0,
}


def attributes_of(resource: Mapping[str, Any]) -> Mapping[str, Any]:
    return resource.get("attributes") or {}


def _pick(resource: Mapping[str, Any], *names: str) -> Dict[str, Any]:
    """Return ``{"id": ..., name: attributes[name], ...}`` for the given names."""
    attributes = attributes_of(resource)
    picked: Dict[str, Any] = {"id": resource.get("id")}
    for name in names:
        picked[name] = attributes.get(name)
    return picked


def format_product(product: CiProduct) -> Dict[str, Any]:
    return _pick(product, "name", "productType", "createdDate")


def format_workflow_summary(workflow: CiWorkflow) -> Dict[str, Any]:
    return _pick(workflow, "name", "description", "isEnabled", "clean", "lastModifiedDate")


def format_workflow(workflow: CiWorkflow) -> Dict[str, Any]:
    formatted = _pick(
        workflow,
        "name",
        "description",
        "isEnabled",
        "isLockedForEditing",
        "clean",
        "containerFilePath",
        "lastModifiedDate",
    )
    formatted["relationships"] = workflow.get("relationships")
    return formatted


def format_build_run(build_run: CiBuildRun) -> Dict[str, Any]:
    """Full status view of a build run, as used by get_build_run and start_build_and_wait."""
    return _pick(
        build_run,
        "number",
        "executionProgress",
        "completionStatus",
        "createdDate",
        "startedDate",
        "finishedDate",
        "sourceCommit",
        "destinationCommit",
        "isPullRequestBuild",
        "issueCounts",
        "startReason",
    )


def format_build_run_summary(build_run: CiBuildRun) -> Dict[str, Any]:
    return _pick(
        build_run,
        "number",
        "executionProgress",
        "completionStatus",
        "createdDate",
        "finishedDate",
        "issueCounts",
        "sourceCommit",
    )


def format_build_action(action: CiBuildAction) -> Dict[str, Any]:
    return _pick(
        action,
        "name",
        "actionType",
        "executionProgress",
        "completionStatus",
        "startedDate",
        "finishedDate",
        "issueCounts",
    )


def format_artifact(artifact: CiArtifact, include_type: bool = False) -> Dict[str, Any]:
    names = ["fileName", "fileSize", "downloadUrl"]
    if include_type:
        names.insert(1, "fileType")
    return _pick(artifact, *names)


def format_artifacts(artifacts: List[CiArtifact], include_type: bool = False) -> List[Dict[str, Any]]:
    return [format_artifact(a, include_type) for a in artifacts]


def format_version(version: Mapping[str, Any]) -> Dict[str, Any]:
    """Xcode and macOS versions share the same ``{version, name}`` shape."""
    return _pick(version, "version", "name")


def format_repository(repository: ScmRepository) -> Dict[str, Any]:
    return _pick(repository, "ownerName", "repositoryName", "httpCloneUrl", "sshCloneUrl")


def format_git_reference(reference: ScmGitReference) -> Dict[str, Any]:
    return _pick(reference, "name", "canonicalName", "kind", "isDeleted")


def issue_counts_of(build_run: CiBuildRun) -> IssueCounts:
    counts = attributes_of(build_run).get("issueCounts")
    if not counts:
        return dict(EMPTY_ISSUE_COUNTS)  # type: ignore[return-value]
    return counts
