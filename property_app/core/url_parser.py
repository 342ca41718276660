import logging
from typing import List

logger = logging.getLogger(__name__)


class OriginParser:
    def parse_origin_list(self, raw_value: str, name: str) -> List[str]:
        items = [v.strip().rstrip("/") for v in raw_value.split(",") if v.strip()]

        origins = [v for v in items if v.startswith(("http://", "https://"))]

        skipped = len(items) - len(origins)
        if skipped:
            logger.warning(f"Ignored {skipped} malformed origin(s) in {name}")

        return origins


parser = OriginParser()
