import pytest

from pydicom import config

from rtkit import ImageGeometry


@pytest.fixture(autouse=True, scope='session')
def setup_pydicom_config():
    """Fixture that sets up pydicom config values for all tests."""
    config.enforce_valid_values = True
    yield


@pytest.fixture
def make_geometry():
    """Factory for geometries of a 4 x 4 image at slice position 50."""
    def factory(orientation=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0), **kwargs):
        params = dict(
            position=(-5.0, -3.0),
            slice_position=50.0,
            spacing=(3.0, 2.0),
            orientation=orientation,
            columns=4,
            rows=4,
        )
        params.update(kwargs)
        return ImageGeometry(**params)
    return factory
