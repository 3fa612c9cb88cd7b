"""Shared, read-only inputs handed to every stage of one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from civicscore.common.config_loader import ConfigBundle
from civicscore.pipeline.assignment import AssignmentEngine
from civicscore.reference.boundaries import BoundaryStore
from civicscore.reference.tables import WardMembership


@dataclass(frozen=True)
class StageContext:
    bundle: ConfigBundle
    store: BoundaryStore
    engine: AssignmentEngine
    data_dir: Path
    run_id: str
    run_date: str
    logger: logging.Logger

    @classmethod
    def build(
        cls,
        bundle: ConfigBundle,
        data_dir: Path,
        *,
        run_id: str,
        run_date: str,
        logger: logging.Logger,
    ) -> StageContext:
        """Load reference data; raises ConfigError before any record is read."""
        store = BoundaryStore.from_geojson(data_dir / bundle.pipeline["reference"]["boundaries"])
        wards = WardMembership.from_config(bundle.wards)
        return cls(
            bundle=bundle,
            store=store,
            engine=AssignmentEngine(store, wards),
            data_dir=data_dir,
            run_id=run_id,
            run_date=run_date,
            logger=logger,
        )

    def output_path(self, filename: str) -> Path:
        return self.data_dir / "out" / filename

    def neighbourhood_names(self) -> dict[str, str]:
        return {nid: self.store.neighbourhood(nid).name for nid in self.store.neighbourhood_ids()}

    @property
    def top_n(self) -> int:
        return int(self.bundle.pipeline["summary"]["top_n"])
