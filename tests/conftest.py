import pytest_asyncio

from qcscan.db.session import StorageManager
from qcscan.repositories.images import ImagesRepository
from qcscan.repositories.recognition_events import RecognitionEventsRepository
from qcscan.repositories.records import RecordsRepository
from qcscan.repositories.templates import TemplatesRepository
from qcscan.schemas.capture import ImageSchema, TemplateSchema


@pytest_asyncio.fixture
async def manager(tmp_path):
    manager = StorageManager(f"sqlite+aiosqlite:///{tmp_path / 'qcscan_test.db'}")
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def handle(manager):
    return await manager.initialize()


@pytest_asyncio.fixture
async def templates(handle):
    return TemplatesRepository(handle)


@pytest_asyncio.fixture
async def images(handle):
    return ImagesRepository(handle)


@pytest_asyncio.fixture
async def records(handle):
    return RecordsRepository(handle)


@pytest_asyncio.fixture
async def events(handle):
    return RecognitionEventsRepository(handle)


@pytest_asyncio.fixture
async def seeded_image(templates, images):
    await templates.create(TemplateSchema(template_id="T1", version="1.0", roi_map_json='{"templateId":"T1","version":"1.0","regions":[]}'))
    await images.create(
        ImageSchema(img_id="I1", uri="file:///captures/I1.jpg", template_id="T1", created_at="2024-01-01T00:00:00Z")
    )
    return "I1"
