from cement.core import handler
from cement.core.controller import CementBaseController, expose

from wpc.cli.plugins.site_functions import build_clone_request, clone_stages
from wpc.core.domainvalidate import WPCDomain
from wpc.core.exc import WPCError
from wpc.core.logging import Log
from wpc.core.pipeline import ClonePipeline


class WPCSiteCloneController(CementBaseController):
    class Meta:
        label = 'clone'
        stacked_on = 'base'
        stacked_type = 'nested'
        description = ('clone the configured WordPress site into a new '
                       'CyberPanel website')
        arguments = [
            (['domain'],
                dict(help='domain of the new website', nargs='?')),
            (['--source'],
                dict(help='domain of the site to clone', dest='source')),
            (['--source-db'],
                dict(help='database name of the source site',
                     dest='source_db')),
            (['--source-db-user'],
                dict(help='database user of the source site',
                     dest='source_db_user')),
            (['--source-db-pass'],
                dict(help='database password of the source site',
                     dest='source_db_pass')),
            (['--php'],
                dict(help='PHP version of the new website', dest='php')),
            (['--package'],
                dict(help='CyberPanel package of the new website',
                     dest='package')),
            (['--no-smoke-test'],
                dict(help='skip the final HTTP check',
                     action='store_true', dest='no_smoke_test')),
        ]

    # command line option -> (config section, key)
    overrides = {
        'source': ('clone', 'source-domain'),
        'source_db': ('clone', 'source-db-name'),
        'source_db_user': ('clone', 'source-db-user'),
        'source_db_pass': ('clone', 'source-db-password'),
        'php': ('panel', 'php'),
        'package': ('panel', 'package'),
    }

    def _apply_overrides(self, pargs):
        """Command line options take precedence over config files"""
        for dest, (section, key) in self.overrides.items():
            value = getattr(pargs, dest, None)
            if value:
                if not self.app.config.has_section(section):
                    self.app.config.add_section(section)
                self.app.config.set(section, key, value)
        if getattr(pargs, 'no_smoke_test', False):
            self.app.config.set('clone', 'smoke-test', 'false')

    def _get_domain(self, pargs):
        domain = pargs.domain
        if not domain:
            domain = input('Enter domain to create (e.g., newsite.com): ')
        return WPCDomain.validate(self, domain)

    def _show_request(self, request):
        Log.info(self, "Creating WordPress clone for: {0}"
                 .format(request.domain))
        Log.info(self, "Source: {0}".format(request.source.domain))
        Log.info(self, "Database: {0}".format(request.db_name))
        Log.info(self, "DB User: {0}".format(request.db_user))
        Log.info(self, "Email: {0}".format(request.email))
        Log.info(self, "Path: {0}".format(request.docroot))

    @expose(hide=True)
    def default(self):
        pargs = self.app.pargs
        try:
            self._apply_overrides(pargs)
            domain = self._get_domain(pargs)
            request = build_clone_request(self, domain)
        except WPCError as e:
            Log.error(self, str(e), exit=False)
            self.app.exit_code = 1
            return

        self._show_request(request)
        report = ClonePipeline(self, clone_stages()).run(request)
        if report.failed_stage:
            Log.debug(self, "clone stopped at stage {0}"
                      .format(report.failed_stage))
        elif report.warnings:
            Log.debug(self, "clone finished with {0} warning(s)"
                      .format(len(report.warnings)))
        self.app.exit_code = report.exit_code


def load(app):
    handler.register(WPCSiteCloneController)
