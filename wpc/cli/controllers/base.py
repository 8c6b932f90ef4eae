"""wpclone base controller."""

from cement.core.controller import CementBaseController, expose

from wpc.core.variables import WPCVar

VERSION = WPCVar.wpc_version

BANNER = """
wpclone v%s
Clone a WordPress site into a new CyberPanel website
""" % VERSION


class WPCBaseController(CementBaseController):
    class Meta:
        label = 'base'
        description = ("Clone a WordPress site hosted on CyberPanel "
                       "into a new domain")
        arguments = [
            (['-v', '--version'], dict(action='version', version=BANNER)),
        ]

    @expose(hide=True)
    def default(self):
        self.app.args.print_help()
