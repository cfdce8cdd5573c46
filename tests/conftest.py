import pytest

from address_match.base_data import default_tables
from address_match.config import Config
from address_match.models import AddressFields, ReferenceEntity
from address_match.reference import ReferenceIndex


def entity(entity_id, lat=None, lon=None, **fields):
    return ReferenceEntity(entity_id=entity_id, address=AddressFields(**fields), lat=lat, lon=lon)


@pytest.fixture(scope="session")
def tables():
    return default_tables()


@pytest.fixture
def cfg():
    return Config(workers=1, chunk_size=2)


@pytest.fixture(scope="session")
def reference_entities():
    return [
        entity("1", house_number="123", pre_directional="North", street_name="Main",
               street_suffix="Street", unit_type="Apt", unit_number="4", lat=42.44, lon=-123.33),
        entity("2", house_number="200", street_name="Oak", street_suffix="Avenue", unit_type="Apt",
               unit_number="4", lat=42.45, lon=-123.32),
        entity("3", house_number="200", street_name="Oak", street_suffix="Avenue", unit_type="Apt",
               unit_number="5", lat=42.45, lon=-123.32),
        entity("4", house_number="55", street_name="Cedar", street_suffix="Lane"),
        entity("10", house_number="77", street_name="Maple", street_suffix="Drive"),
    ]


@pytest.fixture(scope="session")
def index(reference_entities, tables):
    return ReferenceIndex.build(reference_entities, tables)
