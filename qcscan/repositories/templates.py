from __future__ import annotations

from sqlalchemy import ColumnElement

from qcscan.models.capture import Template
from qcscan.repositories.base import BaseRepository, logger
from qcscan.schemas.capture import TemplateSchema
from qcscan.schemas.roi import RoiMap
from qcscan.utils.encoding import parse_roi_map, stringify_roi_map


class TemplatesRepository(BaseRepository[TemplateSchema]):
    table = Template.__table__
    schema = TemplateSchema
    key = "template_id"

    def _ordering(self) -> tuple[ColumnElement, ...]:
        return (self.table.c.template_id.asc(),)

    async def create(self, template: TemplateSchema) -> None:
        await self._insert(template.model_dump())
        logger.info("Template created template_id=%s version=%s", template.template_id, template.version)

    async def register(self, roi_map: RoiMap) -> TemplateSchema:
        template = TemplateSchema(
            template_id=roi_map.template_id,
            version=roi_map.version,
            roi_map_json=stringify_roi_map(roi_map),
        )
        await self.create(template)
        return template

    async def get_roi_map(self, template_id: str) -> RoiMap | None:
        template = await self.find_by_id(template_id)
        if template is None:
            return None
        return parse_roi_map(template.roi_map_json)

    async def find_by_version(self, version: str) -> list[TemplateSchema]:
        return await self._fetch(self._select(self.table.c.version == version))
