"""Design and asset repository.

Lookups by the unique asset key and the final write of each pipeline.
Writes commit immediately: nothing is persisted until a pipeline has
finished its I/O.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from printcore.models import AssetRole, Design, DesignAsset, PrintProductType


class AssetRepository:
    """Repository for designs and their derived assets."""

    def __init__(self, session: Session):
        self._session = session

    # ------------------------------------------------------------------
    # Designs
    # ------------------------------------------------------------------

    def get_design(self, design_id: str) -> Optional[Design]:
        stmt = (
            select(Design)
            .where(Design.id == design_id)
            .options(selectinload(Design.variants))
        )
        return self._session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def find_asset(self, design_id: str, role: AssetRole, size_code: str,
                   product_type: PrintProductType) -> Optional[DesignAsset]:
        stmt = select(DesignAsset).where(
            DesignAsset.design_id == design_id,
            DesignAsset.role == role,
            DesignAsset.size_code == size_code,
            DesignAsset.product_type == product_type,
        )
        return self._session.scalars(stmt).first()

    def count_assets(self, design_id: str = None, role: AssetRole = None) -> int:
        stmt = select(func.count()).select_from(DesignAsset)
        if design_id is not None:
            stmt = stmt.where(DesignAsset.design_id == design_id)
        if role is not None:
            stmt = stmt.where(DesignAsset.role == role)
        return self._session.scalar(stmt)

    def create_asset(self, **fields) -> DesignAsset:
        """Insert an asset row.

        A concurrent writer may have inserted the same key first; the
        unique constraint rejects ours and the winner's row is returned.
        """
        asset = DesignAsset(**fields)
        self._session.add(asset)
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            existing = self.find_asset(fields['design_id'], fields['role'],
                                       fields['size_code'], fields['product_type'])
            if existing is None:
                raise
            logger.warning(f"Asset key already taken by {existing.id}, using existing row")
            return existing
        return asset

    def update_asset(self, asset: DesignAsset, **fields) -> DesignAsset:
        if asset.role == AssetRole.PRINT_FINAL:
            raise ValueError("PRINT_FINAL assets are immutable")
        for key, value in fields.items():
            setattr(asset, key, value)
        self._session.commit()
        return asset
