"""Django settings for the SolStable dashboard.


This project runs the bank-verified token minting flow:
- Link a bank account through Plaid → read the available balance
- Mint an SPL token on a Solana testnet bounded by that balance
- Record bank links and mint events for audit


Secrets come from the environment; every default below is dev-only.
"""

import os
from pathlib import Path
from decimal import Decimal


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_bool(name, default=""):
    v = os.getenv(name, default)
    return v.lower() in ("1", "true", "yes", "on")

def env_list(name, default=""):
    return [x.strip() for x in os.getenv(name, default).split(",") if x.strip()]

#######################
# Plaid (banking-data aggregator). Credentials are checked when the gateway
# is constructed, not here.
PLAID_CLIENT_ID = os.getenv("PLAID_CLIENT_ID", "").strip()
PLAID_SECRET = os.getenv("PLAID_SECRET", "").strip()
PLAID_ENV = os.getenv("PLAID_ENV", "sandbox").lower()
PLAID_CLIENT_NAME = os.getenv("PLAID_CLIENT_NAME", "SolStable")
PLAID_PRODUCTS = env_list("PLAID_PRODUCTS", "auth")
PLAID_COUNTRY_CODES = env_list("PLAID_COUNTRY_CODES", "US")

# Degraded sandbox mode: substitute a fixed balance when Plaid omits one.
# Production deployments should leave this off and fail loudly instead.
PLAID_SANDBOX_FALLBACKS = env_bool("PLAID_SANDBOX_FALLBACKS", "1" if PLAID_ENV == "sandbox" else "0")
SANDBOX_FALLBACK_BALANCE = Decimal("1000.00")

# Bounded retry for transient aggregator / RPC failures
UPSTREAM_MAX_ATTEMPTS = int(os.getenv("UPSTREAM_MAX_ATTEMPTS", "3"))
UPSTREAM_BACKOFF_SECONDS = float(os.getenv("UPSTREAM_BACKOFF_SECONDS", "0.5"))

# Solana
SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.devnet.solana.com")
SOLANA_COMMITMENT = os.getenv("SOLANA_COMMITMENT", "confirmed")
MINT_CONFIRM_TIMEOUT_SECONDS = float(os.getenv("MINT_CONFIRM_TIMEOUT_SECONDS", "60"))
MINT_RECONCILE_GRACE_SECONDS = int(os.getenv("MINT_RECONCILE_GRACE_SECONDS", "180"))

# SPL mints store decimals in a u8; the dashboard only offers up to 18.
MAX_TOKEN_DECIMALS = 18
#######################


INSTALLED_APPS = [
	"django.contrib.admin",
	"django.contrib.auth",
	"django.contrib.contenttypes",
	"django.contrib.sessions",
	"django.contrib.messages",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
]


ROOT_URLCONF = "solstable.urls"
TEMPLATES = [
	{
		"BACKEND": "django.template.backends.django.DjangoTemplates",
		"DIRS": [],
		"APP_DIRS": True,
		"OPTIONS": {
			"context_processors": [
				"django.template.context_processors.debug",
				"django.template.context_processors.request",
				"django.contrib.auth.context_processors.auth",
				"django.contrib.messages.context_processors.messages",
			],
		},
	},
]


WSGI_APPLICATION = "solstable.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "solstable"),
            "USER": os.getenv("POSTGRES_USER", "solstable"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "solstable"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {
			"format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
			"datefmt": "%Y-%m-%d %H:%M:%S",
		},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"django": {"handlers": ["console"], "level": "WARNING"},
	},
}


AUTH_PASSWORD_VALIDATORS = []


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
