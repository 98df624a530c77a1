"""Typed shapes of the App Store Connect resources and request envelopes.

The upstream API follows JSON:API: every resource is ``{type, id, attributes,
relationships?}`` and every document is ``{data, links?, meta?, included?}``.
Keys are kept in the upstream camelCase so payloads round-trip unchanged.
"""

from typing import Any, Dict, List, Literal, Optional

from typing_extensions import NotRequired, TypedDict

ExecutionProgress = Literal["PENDING", "RUNNING", "COMPLETE"]
CompletionStatus = Literal["SUCCEEDED", "FAILED", "ERRORED", "CANCELED", "SKIPPED"]
ActionType = Literal["BUILD", "ANALYZE", "TEST", "ARCHIVE"]
Platform = Literal["MACOS", "IOS", "TVOS", "WATCHOS", "VISIONOS"]
Destination = Literal[
    "ANY_IOS_DEVICE",
    "ANY_IOS_SIMULATOR",
    "ANY_TVOS_DEVICE",
    "ANY_TVOS_SIMULATOR",
    "ANY_WATCHOS_DEVICE",
    "ANY_WATCHOS_SIMULATOR",
    "ANY_MAC",
    "ANY_MAC_CATALYST",
    "ANY_VISIONOS_DEVICE",
    "ANY_VISIONOS_SIMULATOR",
]


class ResourceIdentifier(TypedDict):
    type: str
    id: str


class ToOneRelationship(TypedDict):
    data: ResourceIdentifier


class ToManyRelationship(TypedDict):
    data: List[ResourceIdentifier]


class PagingInformation(TypedDict, total=False):
    total: int
    limit: int


class DocumentMeta(TypedDict, total=False):
    paging: PagingInformation


class DocumentLinks(TypedDict, total=False):
    self: str
    next: str


class APIResponse(TypedDict):
    data: Any
    links: NotRequired[DocumentLinks]
    meta: NotRequired[DocumentMeta]
    included: NotRequired[List[Any]]


class APIErrorEntry(TypedDict, total=False):
    status: str
    code: str
    title: str
    detail: str


class IssueCounts(TypedDict):
    analyzerWarnings: int
    errors: int
    testFailures: int
    warnings: int


class CommitAuthor(TypedDict, total=False):
    displayName: str
    avatarUrl: str


class CommitInfo(TypedDict, total=False):
    commitSha: str
    message: str
    author: CommitAuthor


# --- Resources ---


class CiProductAttributes(TypedDict, total=False):
    name: str
    createdDate: str
    productType: str


class CiProduct(TypedDict):
    type: Literal["ciProducts"]
    id: str
    attributes: CiProductAttributes
    relationships: NotRequired[Dict[str, ToManyRelationship]]


class CiWorkflowAttributes(TypedDict, total=False):
    name: str
    description: str
    isEnabled: bool
    isLockedForEditing: bool
    clean: bool
    containerFilePath: str
    lastModifiedDate: str
    actions: List["CiAction"]
    branchStartCondition: "CiBranchStartCondition"
    manualBranchStartCondition: "CiManualBranchStartCondition"


class CiWorkflow(TypedDict):
    type: Literal["ciWorkflows"]
    id: str
    attributes: CiWorkflowAttributes
    relationships: NotRequired[Dict[str, Any]]


class CiBuildRunAttributes(TypedDict, total=False):
    number: int
    createdDate: str
    startedDate: str
    finishedDate: str
    sourceCommit: CommitInfo
    destinationCommit: CommitInfo
    isPullRequestBuild: bool
    issueCounts: IssueCounts
    executionProgress: ExecutionProgress
    completionStatus: CompletionStatus
    startReason: Literal[
        "GIT_REF_CHANGE", "MANUAL", "PULL_REQUEST_UPDATE", "SCHEDULE", "CI_WORKFLOW_UPDATE"
    ]


class CiBuildRun(TypedDict):
    type: Literal["ciBuildRuns"]
    id: str
    attributes: CiBuildRunAttributes
    relationships: NotRequired[Dict[str, Any]]


class CiBuildActionAttributes(TypedDict, total=False):
    name: str
    actionType: ActionType
    startedDate: str
    finishedDate: str
    issueCounts: IssueCounts
    executionProgress: ExecutionProgress
    completionStatus: CompletionStatus


class CiBuildAction(TypedDict):
    type: Literal["ciBuildActions"]
    id: str
    attributes: CiBuildActionAttributes
    relationships: NotRequired[Dict[str, ToOneRelationship]]


class CiArtifactAttributes(TypedDict, total=False):
    fileName: str
    fileType: str
    fileSize: int
    downloadUrl: str


class CiArtifact(TypedDict):
    type: Literal["ciArtifacts"]
    id: str
    attributes: CiArtifactAttributes


class CiTestDestinationRuntime(TypedDict, total=False):
    runtimeName: str
    runtimeIdentifier: str


class CiTestDestinationKind(TypedDict, total=False):
    deviceTypeName: str
    deviceTypeIdentifier: str
    kind: Literal["SIMULATOR", "MAC"]
    availableRuntimes: List[CiTestDestinationRuntime]


class CiVersionAttributes(TypedDict, total=False):
    name: str
    version: str
    testDestinations: List[CiTestDestinationKind]


class CiXcodeVersion(TypedDict):
    type: Literal["ciXcodeVersions"]
    id: str
    attributes: CiVersionAttributes


class CiMacOsVersion(TypedDict):
    type: Literal["ciMacOsVersions"]
    id: str
    attributes: CiVersionAttributes


class ScmRepositoryAttributes(TypedDict, total=False):
    lastAccessedDate: str
    httpCloneUrl: str
    sshCloneUrl: str
    ownerName: str
    repositoryName: str


class ScmRepository(TypedDict):
    type: Literal["scmRepositories"]
    id: str
    attributes: ScmRepositoryAttributes


class ScmGitReferenceAttributes(TypedDict, total=False):
    name: str
    canonicalName: str
    isDeleted: bool
    kind: Literal["BRANCH", "TAG"]


class ScmGitReference(TypedDict):
    type: Literal["scmGitReferences"]
    id: str
    attributes: ScmGitReferenceAttributes


class BuildArtifacts(TypedDict):
    logs: List[CiArtifact]
    archives: List[CiArtifact]
    screenshots: List[CiArtifact]
    videos: List[CiArtifact]
    resultBundles: List[CiArtifact]
    testProducts: List[CiArtifact]
    other: List[CiArtifact]


# --- Workflow configuration ---


class CiTestDestination(TypedDict, total=False):
    deviceTypeName: str
    deviceTypeIdentifier: str
    runtimeName: str
    runtimeIdentifier: str
    kind: Literal["SIMULATOR", "MAC"]


class CiTestConfig(TypedDict, total=False):
    kind: Literal["USE_SCHEME_SETTINGS", "SPECIFIC_TEST_PLANS"]
    testPlanName: str
    testDestinations: List[CiTestDestination]


class CiAction(TypedDict):
    name: str
    actionType: ActionType
    destination: NotRequired[Destination]
    platform: NotRequired[Platform]
    scheme: NotRequired[str]
    isRequiredToPass: NotRequired[bool]
    # Forwarded as given. App Store Connect has been observed to reject
    # testConfig as an unknown property on TEST actions.
    testConfig: NotRequired[CiTestConfig]


class CiStartConditionFilesAndFoldersRule(TypedDict, total=False):
    mode: Literal["START_IF_ANY_FILE_MATCHES", "DO_NOT_START_IF_ALL_FILES_MATCH"]
    matchers: List[Dict[str, Any]]


class CiBranchPattern(TypedDict):
    pattern: str
    isPrefix: NotRequired[bool]


class CiBranchPatterns(TypedDict, total=False):
    isAllMatch: bool
    patterns: List[CiBranchPattern]


class CiBranchStartCondition(TypedDict, total=False):
    source: CiBranchPatterns
    filesAndFoldersRule: CiStartConditionFilesAndFoldersRule
    autoCancel: bool


class CiManualBranchStartCondition(TypedDict, total=False):
    source: CiBranchPatterns


# --- Request parameters and envelopes ---


class CreateWorkflowParams(TypedDict):
    name: str
    description: str
    containerFilePath: str
    repositoryId: str
    xcodeVersionId: str
    macOsVersionId: str
    actions: List[CiAction]
    isEnabled: NotRequired[bool]
    clean: NotRequired[bool]
    branchStartCondition: NotRequired[CiBranchStartCondition]
    manualBranchStartCondition: NotRequired[CiManualBranchStartCondition]


class UpdateWorkflowParams(TypedDict, total=False):
    """Partial update. A key that is present is sent; ``None`` clears the field upstream."""

    name: str
    description: str
    isEnabled: bool
    clean: bool
    containerFilePath: str
    actions: List[CiAction]
    branchStartCondition: Optional[CiBranchStartCondition]
    manualBranchStartCondition: Optional[CiManualBranchStartCondition]
    xcodeVersionId: str
    macOsVersionId: str


class StartBuildRunRelationships(TypedDict):
    workflow: ToOneRelationship
    sourceBranchOrTag: NotRequired[ToOneRelationship]


class StartBuildRunData(TypedDict):
    type: Literal["ciBuildRuns"]
    relationships: StartBuildRunRelationships


class StartBuildRunRequest(TypedDict):
    data: StartBuildRunData


class CreateWorkflowData(TypedDict):
    type: Literal["ciWorkflows"]
    attributes: Dict[str, Any]
    relationships: Dict[str, ToOneRelationship]


class CreateWorkflowRequest(TypedDict):
    data: CreateWorkflowData


class UpdateWorkflowData(TypedDict):
    type: Literal["ciWorkflows"]
    id: str
    attributes: NotRequired[Dict[str, Any]]
    relationships: NotRequired[Dict[str, ToOneRelationship]]


class UpdateWorkflowRequest(TypedDict):
    data: UpdateWorkflowData
