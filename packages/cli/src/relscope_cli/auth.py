"""Azure DevOps token resolution with az CLI fallback.

Resolution order (stops at first success):
  1. AZURE_DEVOPS_EXT_PAT environment variable (CI / explicit override)
  2. `az account get-access-token` for the Azure DevOps resource
     (works after `az login --allow-no-subscriptions`)
"""

from __future__ import annotations

import logging
import os
import subprocess

from relscope_core.ado.client import AZURE_DEVOPS_RESOURCE_ID

logger = logging.getLogger(__name__)

PAT_ENV_VAR = "AZURE_DEVOPS_EXT_PAT"


def resolve_azure_devops_token(timeout: int = 30) -> tuple[str, str] | None:
    """Return ``(token, kind)`` where kind is ``"pat"`` or ``"bearer"``, or None.

    Never raises; callers should check for None and emit a UsageError.
    """
    # 1. Explicit PAT takes precedence so CI can override a stale az session.
    token = os.environ.get(PAT_ENV_VAR)
    if token:
        return token, "pat"

    # 2. Reuse the signed-in az session.
    try:
        result = subprocess.run(
            [
                "az",
                "account",
                "get-access-token",
                "--resource",
                AZURE_DEVOPS_RESOURCE_ID,
                "--query",
                "accessToken",
                "-o",
                "tsv",
            ],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if result.returncode == 0:
            az_token = result.stdout.strip()
            if az_token:
                logger.debug("Resolved Azure DevOps token via az CLI session.")
                return az_token, "bearer"
        else:
            logger.debug("az account get-access-token failed: %s", result.stderr.strip())
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # az is not installed or timed out; fall through.
        pass

    return None
