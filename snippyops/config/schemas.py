"""Configuration file schema and defaults for snippyops."""

DEFAULT_CONFIG = {
    "deploy": {
        "deploy_dir": "/root/snippy-api",
        "service_name": "snippy-api",
        "binary": "snippy-api",
        "unit_dir": "/etc/systemd/system",
        "env_file": ".env.production",
        "health_url": "http://localhost/api/v1/health",
        "startup_wait": 15,
        "migrations_dir": "migrations",
        "compose_project": "snippy-backend",
        "compose_legacy": False,
    },
    "local": {
        "health_url": "http://localhost:8080/health",
        "log_file": "api.log",
        "postgres_wait": 3,
        "api_wait": 2,
    },
    "ssl": {
        "cert_dir": "/etc/letsencrypt/live/cert",
        "webroot": "/var/www/certbot",
        "output_dir": "ssl",
        "organization": "Snippy",
    },
    "renewal": {
        "domain": "api.snippy.jheysonsaavedra.com",
        "threshold_days": 30,
        "log_file": "/var/log/ssl-renewal.log",
        "schedule": "0 3 * * *",
    },
    "remote": {
        "host": None,
        "user": "root",
        "port": 22,
        "key_path": None,
    },
}

_string = {"type": "string"}
_nullable_string = {"type": ["string", "null"]}
_seconds = {"type": "integer", "minimum": 0}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "deploy": {
            "type": "object",
            "properties": {
                "deploy_dir": _string,
                "service_name": {"type": "string", "pattern": r"^[A-Za-z0-9@._-]+$"},
                "binary": _string,
                "unit_dir": _string,
                "env_file": _string,
                "health_url": {"type": "string", "pattern": r"^https?://"},
                "startup_wait": _seconds,
                "migrations_dir": _string,
                "compose_project": _string,
                "compose_legacy": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "local": {
            "type": "object",
            "properties": {
                "health_url": {"type": "string", "pattern": r"^https?://"},
                "log_file": _string,
                "postgres_wait": _seconds,
                "api_wait": _seconds,
            },
            "additionalProperties": False,
        },
        "ssl": {
            "type": "object",
            "properties": {
                "cert_dir": _string,
                "webroot": _string,
                "output_dir": _string,
                "organization": _string,
            },
            "additionalProperties": False,
        },
        "renewal": {
            "type": "object",
            "properties": {
                "domain": _string,
                "threshold_days": {"type": "integer", "minimum": 1},
                "log_file": _string,
                "schedule": {
                    "type": "string",
                    "description": "Five-field cron expression",
                },
            },
            "additionalProperties": False,
        },
        "remote": {
            "type": "object",
            "properties": {
                "host": _nullable_string,
                "user": _string,
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                "key_path": _nullable_string,
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}
