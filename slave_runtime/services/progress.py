# slave_runtime/services/progress.py
import logging

log = logging.getLogger(__name__)


class ImageProgress:
    """Forwards docker pull/import progress events to the log."""

    def __init__(self, image: str, logger: logging.Logger | None = None):
        self.image = image
        self._log = logger or log

    def report(self, event: dict):
        status = event.get("status") or event.get("stream") or ""
        layer = event.get("id")
        detail = event.get("progress")

        # per-chunk progress bars are noisy; keep them out of INFO
        if detail:
            self._log.debug("[%s] %s %s %s", self.image, layer or "", status, detail)
        elif layer:
            self._log.info("[%s] %s: %s", self.image, layer, status)
        else:
            self._log.info("[%s] %s", self.image, status.strip())
