import pytest

from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.supabase import CatalogClient

from collectr_fakes import FakeSupabase, catalog_tables


@pytest.fixture
def fake_supabase():
    return FakeSupabase(catalog_tables())


@pytest.fixture
def catalog(fake_supabase):
    return CatalogClient(fake_supabase).load_sets()


@pytest.fixture
def config():
    return ImporterConfig(use_browser=False)
