import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "organization": None,  # "contoso" or "https://dev.azure.com/contoso"
    "project": None,
    "output_dir": "output",
    "recent_builds_top": 100,
    "fallback_log_ids": ["19", "18", "20", "34"],  # log ids that usually hold lint/test output
    "az_timeout": 120,
    "request_timeout": 30,
}

_ENV_OVERRIDES = {
    "organization": "AZURE_DEVOPS_ORG",
    "project": "AZURE_DEVOPS_PROJECT",
}


def load_config(config_path: str = ".relscope.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .relscope.yml in the current directory
      3. AZURE_DEVOPS_ORG / AZURE_DEVOPS_PROJECT environment variables
      4. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "fallback_log_ids": list(DEFAULT_CONFIG["fallback_log_ids"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    for key, env_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["fallback_log_ids"] = [str(log_id) for log_id in config.get("fallback_log_ids") or []]

    return config


def organization_url(organization: str | None) -> str:
    """Normalise an organization name or URL to ``https://dev.azure.com/<org>``."""
    if not organization:
        raise ValueError("No Azure DevOps organization configured. Set 'organization' in .relscope.yml.")
    org = organization.strip().rstrip("/")
    if org.startswith("https://") or org.startswith("http://"):
        return org
    return f"https://dev.azure.com/{org}"
