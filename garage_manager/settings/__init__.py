import os

from dotenv import load_dotenv

from .base import BASE_DIR

load_dotenv(BASE_DIR / ".env")
ENVIRONMENT = os.getenv("DJANGO_ENV", "local")

if ENVIRONMENT == "production_like":
    from .production_like import *  # noqa: F403, F401
elif ENVIRONMENT == "test":
    from .test import *  # noqa: F403, F401
else:
    from .local import *  # noqa: F403, F401
