from .base import *  # noqa: F403

# Load DEBUG from environment - should be False in production
DEBUG = os.getenv("DEBUG", "True").lower() == "true"  # noqa: F405

# Load ALLOWED_HOSTS from environment variables
allowed_hosts_env = os.getenv("ALLOWED_HOSTS", "")  # noqa: F405
if allowed_hosts_env:
    ALLOWED_HOSTS = [
        host.strip() for host in allowed_hosts_env.split(",") if host.strip()
    ]
else:
    # Fallback for development
    ALLOWED_HOSTS = [
        "127.0.0.1",
        "localhost",
    ]

if not SECRET_KEY:  # noqa: F405
    SECRET_KEY = "django-insecure-local-development-key"

validate_required_settings({"SECRET_KEY": SECRET_KEY})  # noqa: F405
