import logging

from google.cloud import secretmanager

from poupapig_assistant.config import Settings

logger = logging.getLogger(__name__)


def get_secret(settings: Settings, secret_id: str, version_id: str = "latest") -> str | None:
    """Read a secret from GCP Secret Manager; None when unavailable."""
    if not settings.gcp_project_id:
        logger.warning("GCP project ID not configured; cannot read secret %s.", secret_id)
        return None

    name = f"projects/{settings.gcp_project_id}/secrets/{secret_id}/versions/{version_id}"
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": name})
    except Exception as exc:
        logger.exception("Failed to fetch secret %s: %s", secret_id, exc)
        return None
    return response.payload.data.decode("UTF-8")
