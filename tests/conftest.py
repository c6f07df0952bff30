"""
Shared pytest configuration.

Test classes deriving from ``MultiDriverTestBase`` get their ``api`` fixture
parametrized with one entry per driver, so results show up as
``test_x[driver-direct]`` and ``test_x[driver-asgi]``.
"""

from restnest.testing import MultiDriverTestBase


def pytest_generate_tests(metafunc):
    if (metafunc.cls is not None and
            issubclass(metafunc.cls, MultiDriverTestBase) and
            'api' in metafunc.fixturenames):

        drivers = metafunc.cls.get_available_drivers()

        metafunc.parametrize(
            'api',
            drivers,
            indirect=True,
            ids=[f"driver-{d}" for d in drivers]
        )
