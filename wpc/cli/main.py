"""wpclone main application entry point."""
import sys
from copy import deepcopy

from cement.core.exc import CaughtSignal, FrameworkError
from cement.core.foundation import CementApp
from cement.ext.ext_argparse import ArgParseArgumentHandler
from cement.utils.misc import init_defaults

from wpc.core import exc
from wpc.core.variables import WPCVar

# Application default.  Should update config/wpclone.conf to reflect any
# changes, or additions here.
defaults = init_defaults('wpclone', 'log.logging', 'clone', 'mysql', 'panel')

defaults['log.logging']['file'] = WPCVar.wpc_log_file
defaults['log.logging']['level'] = 'INFO'
defaults['log.logging']['to_console'] = False

defaults['clone']['source-domain'] = ''
defaults['clone']['source-db-name'] = ''
defaults['clone']['source-db-user'] = ''
defaults['clone']['source-db-password'] = ''
defaults['clone']['home-base'] = WPCVar.wpc_home_base
defaults['clone']['docroot'] = WPCVar.wpc_docroot
defaults['clone']['table-prefix'] = WPCVar.wpc_table_prefix
defaults['clone']['report-dir'] = WPCVar.wpc_report_dir
defaults['clone']['admin-account'] = WPCVar.wpc_admin_account
defaults['clone']['mailbox-user'] = WPCVar.wpc_mailbox_user
defaults['clone']['password-length'] = WPCVar.wpc_password_length
defaults['clone']['settle-delay'] = WPCVar.wpc_settle_delay
defaults['clone']['smoke-test'] = True
defaults['clone']['smoke-test-url'] = WPCVar.wpc_smoke_url
defaults['clone']['smoke-test-timeout'] = WPCVar.wpc_smoke_timeout

defaults['mysql']['host'] = WPCVar.wpc_mysql_host
defaults['mysql']['admin-user'] = WPCVar.wpc_mysql_admin_user
defaults['mysql']['admin-password'] = ''
defaults['mysql']['mysql-bin'] = WPCVar.wpc_mysql_bin
defaults['mysql']['mysqldump-bin'] = WPCVar.wpc_mysqldump_bin

defaults['panel']['bin'] = WPCVar.wpc_panel_bin
defaults['panel']['package'] = WPCVar.wpc_panel_package
defaults['panel']['owner'] = WPCVar.wpc_panel_owner
defaults['panel']['php'] = WPCVar.wpc_panel_php

# tests never write the log file
test_defaults = deepcopy(defaults)
test_defaults['log.logging']['file'] = None


class WPCArgHandler(ArgParseArgumentHandler):
    class Meta:
        label = 'wpc_args_handler'

    def error(self, message):
        super(WPCArgHandler, self).error("unknown args")


class WPCApp(CementApp):
    class Meta:
        label = 'wpclone'

        config_defaults = defaults

        config_files = [
            WPCVar.wpc_config_file,
            '~/.wpclone.conf',
        ]

        # All built-in application bootstrapping (always run)
        bootstrap = 'wpc.cli.bootstrap'

        arg_handler = WPCArgHandler

        exit_on_close = True


class WPCTestApp(WPCApp):
    """A test app that is better suited for testing."""
    class Meta:
        config_defaults = test_defaults

        # default argv to empty (don't use sys.argv)
        argv = []

        # don't look for config files (could break tests)
        config_files = []

        # Don't call sys.exit() when app.close() is called in tests
        exit_on_close = False


# Define the applicaiton object outside of main, as some libraries might wish
# to import it as a global (rather than passing it into another class/func)
app = WPCApp()


def main():
    with app:
        try:
            app.run()

        except exc.WPCError as e:
            # Catch our application errors and exit 1 (error)
            print(e, file=sys.stderr)
            app.exit_code = 1

        except FrameworkError as e:
            # Catch framework errors and exit 1 (error)
            print(e, file=sys.stderr)
            app.exit_code = 1

        except CaughtSignal as e:
            # Default Cement signals are SIGINT and SIGTERM, exit 0 (non-error)
            print("\n%s" % e)
            app.exit_code = 0


if __name__ == '__main__':
    main()
