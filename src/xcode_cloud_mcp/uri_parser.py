"""Accept either bare ids or ``xcode-cloud://<kind>/<id>`` resource URIs as tool arguments."""

from xcode_cloud_mcp.errors import InvalidParameterError

URI_SCHEME = "xcode-cloud://"


def resource_uri(kind: str, resource_id: str) -> str:
    return f"{URI_SCHEME}{kind}/{resource_id}"


def _parse_id(value: str, kind: str) -> str:
    prefix = resource_uri(kind, "")
    value = value.strip()
    if value.startswith(prefix):
        value = value[len(prefix):]
    elif value.startswith(URI_SCHEME):
        raise InvalidParameterError(
            f"Expected a {kind} id or '{prefix}<id>' URI, got '{value}'"
        )
    if not value:
        raise InvalidParameterError(f"Missing {kind} id")
    return value


def parse_product_id(value: str) -> str:
    return _parse_id(value, "product")


def parse_workflow_id(value: str) -> str:
    return _parse_id(value, "workflow")


def parse_build_run_id(value: str) -> str:
    return _parse_id(value, "build-run")
