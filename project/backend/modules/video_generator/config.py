"""
Video Generator configuration.

Endpoints and request constants for Veo on Vertex AI.
"""

# OAuth2 service-account exchange
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
TOKEN_LIFETIME_SECONDS = 3600
# Refresh cached tokens this long before they expire
TOKEN_REFRESH_MARGIN_SECONDS = 60

# Appended to every background prompt
PROMPT_SUFFIX = "vertical 9:16 aspect ratio, cinematic quality, smooth motion"

# Per-request HTTP timeout for submit and status calls
VEO_REQUEST_TIMEOUT_SECONDS = 60.0


def vertex_base_url(location: str) -> str:
    return f"https://{location}-aiplatform.googleapis.com/v1"


def predict_long_running_url(project_id: str, location: str, model: str) -> str:
    return (
        f"{vertex_base_url(location)}/projects/{project_id}/locations/{location}"
        f"/publishers/google/models/{model}:predictLongRunning"
    )


def operation_url(location: str, operation_name: str) -> str:
    return f"{vertex_base_url(location)}/{operation_name.lstrip('/')}"
