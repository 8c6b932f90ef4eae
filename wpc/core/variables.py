"""wpclone core variable module"""


class WPCVar():
    """Intialization of core variables"""

    # wpclone version
    wpc_version = "1.0.0"

    # wpclone paths
    wpc_config_file = '/etc/wpclone/wpclone.conf'
    wpc_log_file = '/var/log/wpclone/wpclone.log'

    # Hosting layout
    wpc_home_base = '/home'
    wpc_docroot = 'public_html'
    wpc_report_dir = '/root'
    wpc_admin_account = 'admin'

    # Panel defaults
    wpc_panel_bin = 'cyberpanel'
    wpc_panel_package = 'Default'
    wpc_panel_owner = 'admin'
    wpc_panel_php = '8.1'

    # MySQL defaults
    wpc_mysql_host = 'localhost'
    wpc_mysql_admin_user = 'root'
    wpc_mysql_bin = 'mysql'
    wpc_mysqldump_bin = 'mysqldump'
    wpc_mysqldump_options = ['--single-transaction', '--routines',
                             '--triggers', '--add-drop-table']

    # WordPress
    wpc_table_prefix = 'wp_'
    wpc_mailbox_user = 'contact'
    wpc_password_length = 25
    wpc_db_name_suffix = '_new_db'
    wpc_db_user_suffix = '_new_user'

    # Permissions
    wpc_dir_perms = 0o755
    wpc_file_perms = 0o644
    wpc_config_perms = 0o600

    # Smoke test
    wpc_smoke_url = 'http://localhost/'
    wpc_smoke_timeout = 10
    wpc_smoke_markers = ('wordpress', 'html')

    # Seconds to wait after a site delete
    wpc_settle_delay = 2
