"""wpclone bootstrapping."""

# All built-in application controllers should be imported, and registered
# in this file in the same way as WPCBaseController.

from cement.core import handler

from wpc.cli.controllers.base import WPCBaseController
from wpc.cli.plugins import site_clone


def load(app):
    handler.register(WPCBaseController)
    site_clone.load(app)
