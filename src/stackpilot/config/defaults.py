"""Default settings and fixed constants for the deployment engine."""

# Templates above this size cannot be passed inline and must be staged
LARGE_TEMPLATE_SIZE_KB = 50

CHANGE_SET_CAPABILITIES: list[str] = [
    "CAPABILITY_IAM",
    "CAPABILITY_NAMED_IAM",
    "CAPABILITY_AUTO_EXPAND",
]

CHANGE_SET_NAME_PREFIX = "StackPilot"

# StatusReason prefixes of a FAILED change-set that simply had nothing to do
NO_CHANGE_REASON_PREFIXES: tuple[str, ...] = (
    "The submitted information didn't contain changes.",
    "No updates are to be performed.",
)

UNKNOWN_ACCOUNT = "unknown-account"
UNKNOWN_REGION = "unknown-region"

# Placeholders that may appear in pre-uploaded template URLs
ACCOUNT_PLACEHOLDER = "${AWS::AccountId}"
REGION_PLACEHOLDER = "${AWS::Region}"
PARTITION_PLACEHOLDER = "${AWS::Partition}"
DO_NOT_USE_MARKER = "**DONOTUSE**"

# Resource kinds understood by the fast-path classifier
FUNCTION_RESOURCE_TYPE = "AWS::Lambda::Function"
TOOLING_METADATA_RESOURCE_TYPE = "AWS::CDK::Metadata"
ASSET_PATH_METADATA_KEY = "aws:asset:path"
CODE_PROPERTY = "Code"
CODE_LOCATION_KEYS: frozenset[str] = frozenset({"S3Bucket", "S3Key"})

# Asset parameter naming used by legacy asset synthesis
ASSET_PATH_PREFIX = "asset."
ASSET_BUCKET_PARAMETER_MARKER = "S3Bucket"
ASSET_KEY_PARAMETER_MARKER = "S3VersionKey"
ASSET_KEY_DELIMITER = "||"

SSM_PARAMETER_TYPE_PREFIX = "AWS::SSM::Parameter::"

# Poll deadlines (seconds)
DEFAULT_CHANGE_SET_TIMEOUT = 30 * 60
DEFAULT_STACK_TIMEOUT = 2 * 60 * 60

DEFAULT_MONITOR_INTERVAL = 2.0
DEFAULT_PUBLISH_CONCURRENCY = 4
