# config/app.py
# Réglages de l'application, lus depuis l'environnement (.env chargé avant).
import os

from ada import env

CONFIG = {
    "name": os.getenv("APP_NAME", "ADA Framework"),
    # development / production / testing
    "env": os.getenv("APP_ENV", "development"),
    "debug": env.flag("APP_DEBUG"),
    "url": os.getenv("APP_URL", "http://localhost:8080"),
    "timezone": os.getenv("APP_TIMEZONE", "UTC"),
    "locale": os.getenv("APP_LOCALE", "en"),
    "charset": "UTF-8",

    # -------------------------------------------------------------------
    # Logs (niveaux : emergency … debug)
    # -------------------------------------------------------------------
    "log": {
        "path": os.getenv("LOG_PATH", "storage/logs/app.log"),
        "level": os.getenv("LOG_LEVEL", "info"),
        "max_files": 30,
        "stderr": True,
    },

    # -------------------------------------------------------------------
    # Sessions (fichiers JSON sous storage/sessions)
    # -------------------------------------------------------------------
    "session": {
        # inactivité maximale, en secondes
        "lifetime": int(os.getenv("SESSION_LIFETIME", "1800")),
        "path": os.getenv("SESSION_PATH", "storage/sessions"),
        "cookie_name": "ada_session",
        "cookie_path": "/",
        "cookie_domain": None,
        "cookie_secure": env.flag("SESSION_SECURE"),
        "cookie_httponly": True,
        "cookie_samesite": "Lax",
    },

    "security": {
        "csrf_token_name": "_token",
        "hash_method": "scrypt",
    },

    "views": {
        "path": "templates",
        "cache_enabled": env.flag("VIEW_CACHE", True),
        "cache_path": os.getenv("VIEW_CACHE_PATH", "storage/cache/views"),
    },

    # derrière Render / Cloudflare
    "proxy_fix": env.flag("PROXY_FIX"),
}
