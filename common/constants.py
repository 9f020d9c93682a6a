from aws_cdk import aws_lambda as _lambda, aws_logs as logs

COMPUTE_RUNTIME = _lambda.Runtime.PROVIDED_AL2023
COMPUTE_HANDLER = "bootstrap"
DEFAULT_ARCHITECTURE = _lambda.Architecture.ARM_64
# Produced by `cargo lambda build --release --arm64` in the calendar repo
COMPUTE_ARTIFACT_DIR = "trashcal-lambda/target/lambda/trashcal-lambda"
LOG_RETENTION = logs.RetentionDays.ONE_MONTH

DEFAULT_ENV = "prod"

# Naming convention components
SERVICE_NAME = "trashcal"  # The application name
COMPONENT = "calendar"  # The functional component/subsystem

# Deployment units
APP_STACK_ID = "TrashcalCdkStack"
CERT_STACK_ID = "TrashcalCertStack"
# CloudFront only accepts ACM certificates issued in us-east-1
CERTIFICATE_REGION = "us-east-1"
DEFAULT_REGION = "us-west-2"

# Required and optional environment variables
ENV_DOMAIN_NAME = "DOMAIN_NAME"
ENV_EMAIL = "EMAIL"
ENV_GITHUB_OWNER = "GITHUB_OWNER"
ENV_GITHUB_REPO = "GITHUB_REPO"
REQUIRED_ENV_VARS = (ENV_DOMAIN_NAME, ENV_EMAIL)

# HTTP front door
API_ROUTE_PATH = "/{id}"

# Content delivery
CACHE_MIN_TTL_HOURS = 1
CACHE_DEFAULT_TTL_DAYS = 1
CACHE_MAX_TTL_DAYS = 2
# Headers whose value selects the response body for the same path
REPRESENTATION_HEADERS = ("Accept",)
CACHE_KEY_HEADERS = ("Accept",)

# Observability
METRIC_NAMESPACE = "trashcal"
SUCCESS_METRIC_NAME = "total"
SUCCESS_LOG_PHRASE = "Returning calendar"
FAILURE_METRIC_NAME = "panics"
FAILURE_LOG_PHRASE = "panicked"

# CI trust
GITHUB_OIDC_URL = "https://token.actions.githubusercontent.com"
GITHUB_OIDC_AUDIENCE = "sts.amazonaws.com"
GITHUB_OWNER = "stabbylambda"
GITHUB_REPO = "trashcal"
GITHUB_REF_FILTER = "ref:refs/heads/main"
CDK_ROLE_PREFIX = "cdk-"
DEPLOYMENT_POLICY_NAME = "CdkDeploymentPolicy"
