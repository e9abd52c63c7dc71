from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class CatalogConfig:
    """
    Where the seed item catalogs live.

    Each domain reads ``<data_dir>/<domain>.csv``.
    """

    data_dir: Path = Path(
        os.getenv("RECS_DATA_DIR", str(Path(__file__).resolve().parent.parent / "data"))
    )

    def catalog_path(self, domain: str) -> Path:
        return self.data_dir / f"{domain}.csv"


DEFAULT_CATALOG_CONFIG = CatalogConfig()
