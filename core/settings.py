import os
import environ
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialise environ
env = environ.Env(
    # default types + values
    DEBUG=(bool, False)
)

# Read .env file (optional if using system env)
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))

# SECURITY
SECRET_KEY = env("SECRET_KEY", default="dev-secret-change-me")
DEBUG = env("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'promotions',
    'cart',
]

# promotions and orders live in the managed backend, nothing is migrated here
DATABASES = {
    "default": env.db("DATABASE_URL", default="sqlite://:memory:")
}

# CACHES
CACHES = {
    "default": env.cache("CACHE_URL", default="locmemcache://")
}

# PRICING
PROMOTIONS_ACTIVE_CACHE_TTL = env.int("PROMOTIONS_ACTIVE_CACHE_TTL", default=5)  # seconds
CART_DEFAULT_ITEM_PRICE = env("CART_DEFAULT_ITEM_PRICE", default="200.00")  # placeholder when no price is known
CART_FALLBACK_DELIVERY_FEE = env("CART_FALLBACK_DELIVERY_FEE", default="2.99")  # used until a real fee is quoted
CART_SERVICE_FEE = env("CART_SERVICE_FEE", default="0.00")

# LOGGING
LOG_LEVEL = env("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "[{levelname}] {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "promotions": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
        "cart": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
        "core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
    },
}

# TIMEZONE & LANGUAGE
LANGUAGE_CODE = "en-us"
TIME_ZONE = env("TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True

# Default primary key field type
# https://docs.djangoproject.com/en/5.1/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
