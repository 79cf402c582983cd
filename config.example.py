# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Credentials are never read from the environment:
`taiga login` prompts for them and stores the session in the cache directory.

This file exists to make the repo self-documenting without opening src/taiga_cli/config.py.
"""

ENV_VARS = {
    # App / logging
    "TAIGA_APP_NAME": "Program name shown in help and the User-Agent header (default: taiga).",
    "TAIGA_LOG_LEVEL": "Console logging level (default: WARNING).",
    "TAIGA_LOG_DIR": "Directory for the full debug log taiga.log (default: <cache_dir>).",
    # Remote service
    "TAIGA_BASE_URL": "API base URL used by `taiga login` (default: https://api.taiga.io/api/v1).",
    "TAIGA_TOKEN_TTL_SECONDS": "Assumed access token lifetime before a proactive refresh (default: 86400, min 60).",
    "TAIGA_REMEMBER_CREDENTIALS": "Keep username/password in the session for silent re-login (true/false).",
    "TAIGA_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TAIGA_READ_TIMEOUT_SECONDS": "HTTP read timeout, never below the connect timeout (default: 30).",
    # Local state
    "TAIGA_CACHE_DIR": "Session, project and task list cache (default: $XDG_CACHE_HOME/taiga or ~/.cache/taiga).",
}
