from __future__ import annotations

from sqlalchemy import or_

from qcscan.models.capture import Image
from qcscan.repositories.base import BaseRepository, logger
from qcscan.schemas.capture import ImageSchema


class ImagesRepository(BaseRepository[ImageSchema]):
    table = Image.__table__
    schema = ImageSchema
    key = "img_id"

    async def create(self, image: ImageSchema) -> None:
        await self._insert(image.model_dump())
        logger.info("Image created img_id=%s template_id=%s", image.img_id, image.template_id)

    async def find_by_template_id(self, template_id: str) -> list[ImageSchema]:
        return await self._fetch(self._select(self.table.c.template_id == template_id))

    async def find_by_date_range(self, start_date: str, end_date: str) -> list[ImageSchema]:
        return await self._fetch(self._select(self.table.c.created_at.between(start_date, end_date)))

    async def find_with_quality_issues(
        self,
        blur_threshold: float | None = None,
        glare_threshold: float | None = None,
    ) -> list[ImageSchema]:
        conditions = []
        if blur_threshold is not None:
            conditions.append(self.table.c.blur > blur_threshold)
        if glare_threshold is not None:
            conditions.append(self.table.c.glare > glare_threshold)
        if not conditions:
            # no thresholds: any image that carries a quality signal at all
            conditions = [self.table.c.blur.is_not(None), self.table.c.glare.is_not(None)]
        return await self._fetch(self._select(or_(*conditions)))
