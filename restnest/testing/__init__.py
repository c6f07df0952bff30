"""
Testing toolkit for restnest APIs: a resource-level DSL, drivers that run it
in-process or through ASGI, and a pytest base class that runs every test
against each driver.
"""

from .dsl import RestApiDsl, HttpRequest, HttpResponse
from .drivers import ASGIDriver, DriverInterface, RestNestDriver
from .multi_driver_base import MultiDriverTestBase

__all__ = [
    'RestApiDsl',
    'HttpRequest',
    'HttpResponse',
    'DriverInterface',
    'RestNestDriver',
    'ASGIDriver',
    'MultiDriverTestBase',
]
