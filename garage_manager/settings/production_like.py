from dotenv import load_dotenv

from .base import *  # noqa: F403

# Production like is for the shop server, everything must come from .env
load_dotenv(BASE_DIR / ".env")  # noqa: F405

DEBUG = False

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "").split(",")  # noqa: F405
ALLOWED_HOSTS = [host.strip() for host in ALLOWED_HOSTS if host.strip()]

validate_required_settings(  # noqa: F405
    {
        "SECRET_KEY": SECRET_KEY,  # noqa: F405
        "MYSQL_DATABASE": os.getenv("MYSQL_DATABASE"),  # noqa: F405
        "ALLOWED_HOSTS": ALLOWED_HOSTS,
    }
)
