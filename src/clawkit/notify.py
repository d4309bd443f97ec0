from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .arxiv_ops import render_markdown
from .joblog import SkillLogger
from .utils import env_truthy


class WebhookNotifier:
    """Posts new-paper digests to an HTTP(S) webhook target."""

    def __init__(self, logger: SkillLogger, timeout: int = 20, dry_run: Optional[bool] = None) -> None:
        self.logger = logger
        self.timeout = timeout
        self.dry_run = env_truthy("CLAWKIT_NOTIFY_DRY_RUN") if dry_run is None else dry_run

    def send(self, papers: List[Dict[str, Any]], target: str) -> bool:
        if not papers:
            return False
        text = f"New arXiv papers ({len(papers)}):\n\n{render_markdown(papers)}"
        if not target.lower().startswith(("http://", "https://")):
            self.logger.log(f"[ArXiv] Unsupported notify target (expected http(s) URL): {target}")
            return False
        if self.dry_run:
            self.logger.log(f"[DRY_RUN] Would notify {target} about {len(papers)} papers.")
            return False
        try:
            resp = requests.post(target, json={"text": text}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            self.logger.log(f"[ArXiv] Notification to {target} failed: {exc}")
            return False
        self.logger.log(f"[ArXiv] Notified {target} about {len(papers)} papers.")
        return True
