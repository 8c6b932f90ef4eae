import os
import re
import tempfile
import time
from datetime import datetime
from typing import NamedTuple

import requests

from wpc.core.domainvalidate import WPCDomain
from wpc.core.exc import WPCConfigError
from wpc.core.fileutils import WPCFileUtils
from wpc.core.logging import Log
from wpc.core.mysql import (DBCredentials, MySQLConnectionError,
                            StatementExcecutionError, WPCMysql)
from wpc.core.ownership import default_strategies, resolve_ownership
from wpc.core.panel import PanelError, WPCPanel
from wpc.core.pipeline import SiteError, Stage, StageResult
from wpc.core.random import RANDOM
from wpc.core.variables import WPCVar

HTACCESS_SENTINEL = '# BEGIN WordPress'

HTACCESS_BLOCK = r"""# BEGIN WordPress

RewriteEngine On
RewriteRule .* - [E=HTTP_AUTHORIZATION:%{HTTP:Authorization}]
RewriteBase /
RewriteRule ^index\.php$ - [L]
RewriteCond %{REQUEST_FILENAME} !-f
RewriteCond %{REQUEST_FILENAME} !-d
RewriteRule . /index.php [L]

# END WordPress
"""

# .htaccess states
RULES_ABSENT = 'absent'
RULES_PRESENT = 'present'
RULES_MISSING_BLOCK = 'missing-block'

WP_CONFIG_KEYS = ('DB_NAME', 'DB_USER', 'DB_PASSWORD')

URL_COLUMNS = (('posts', 'post_content'),
               ('posts', 'post_excerpt'),
               ('comments', 'comment_content'))


class PanelSettings(NamedTuple):
    bin: str = WPCVar.wpc_panel_bin
    package: str = WPCVar.wpc_panel_package
    owner: str = WPCVar.wpc_panel_owner
    php: str = WPCVar.wpc_panel_php


class SourceSite(NamedTuple):
    domain: str
    docroot: str
    db: DBCredentials


class CloneRequest(NamedTuple):
    """Everything one clone run needs, computed once before any stage"""
    domain: str
    password: str
    db_name: str
    db_user: str
    email: str
    site_home: str
    docroot: str
    source: SourceSite
    admin_db: DBCredentials
    panel: PanelSettings = PanelSettings()
    mailbox_user: str = WPCVar.wpc_mailbox_user
    table_prefix: str = WPCVar.wpc_table_prefix
    admin_account: str = WPCVar.wpc_admin_account
    report_dir: str = WPCVar.wpc_report_dir
    settle_delay: float = WPCVar.wpc_settle_delay
    mysql_bin: str = WPCVar.wpc_mysql_bin
    mysqldump_bin: str = WPCVar.wpc_mysqldump_bin
    smoke_test: bool = True
    smoke_url: str = WPCVar.wpc_smoke_url
    smoke_timeout: float = WPCVar.wpc_smoke_timeout

    @property
    def new_url(self):
        return "https://{0}".format(self.domain)

    @property
    def site_db(self):
        """Site scoped login created by the panel"""
        return DBCredentials(self.db_user, self.password,
                             self.admin_db.host, self.db_name)

    @property
    def wp_config(self):
        return os.path.join(self.docroot, 'wp-config.php')

    @property
    def htaccess(self):
        return os.path.join(self.docroot, '.htaccess')

    @property
    def report_path(self):
        return os.path.join(self.report_dir,
                            "{0}_credentials.txt".format(self.domain))


def derive_db_identifiers(domain):
    """example.com -> (example_com_new_db, example_com_new_user)"""
    slug = WPCDomain.slug(domain)
    return (slug + WPCVar.wpc_db_name_suffix,
            slug + WPCVar.wpc_db_user_suffix)


def _conf(controller, section, key, fallback=''):
    config = controller.app.config
    if config.has_section(section) and key in config.keys(section):
        value = config.get(section, key)
        if value is not None:
            return value
    return fallback


def _conf_bool(controller, section, key, fallback=True):
    value = _conf(controller, section, key, None)
    if value is None:
        return fallback
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _conf_number(controller, section, key, fallback, cast=float):
    value = _conf(controller, section, key, fallback)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise WPCConfigError("[{0}] {1} must be a number, got {2!r}"
                             .format(section, key, value))


def parse_wp_db_config(config_path):
    """
    Parse WordPress database configuration from wp-config.php file.

    Args:
        config_path (str): Path to wp-config.php file

    Returns:
        dict: Database credentials (DB_NAME, DB_USER, DB_PASSWORD, DB_HOST)
    """
    creds = {}
    if not os.path.isfile(config_path):
        return creds

    define_re = re.compile(
        r"""define\(\s*['"](DB_NAME|DB_USER|DB_PASSWORD|DB_HOST)['"]\s*,"""
        r"""\s*['"](.*?)['"]\s*\)""")
    try:
        with open(config_path, 'r', encoding='utf-8',
                  errors='surrogateescape') as f:
            for line in f:
                match = define_re.search(line)
                if match:
                    creds[match.group(1)] = match.group(2)
    except IOError:
        # Return empty dict if file cannot be read
        return {}

    return creds


def build_source_site(controller, home_base, docroot_name, mysql_host):
    """
    Describe the site being cloned. Database credentials missing from
    the configuration are read from the source wp-config.php.
    """
    source_domain = WPCDomain.normalize(
        _conf(controller, 'clone', 'source-domain'))
    if not source_domain:
        raise WPCConfigError("source site is not configured, set "
                             "[clone] source-domain or pass --source")
    docroot = os.path.join(home_base, source_domain, docroot_name)

    db = {
        'DB_NAME': _conf(controller, 'clone', 'source-db-name'),
        'DB_USER': _conf(controller, 'clone', 'source-db-user'),
        'DB_PASSWORD': _conf(controller, 'clone', 'source-db-password'),
    }
    if not all(db.values()):
        found = parse_wp_db_config(os.path.join(docroot, 'wp-config.php'))
        for key, value in db.items():
            if not value and found.get(key):
                Log.debug(controller, "{0} of {1} read from wp-config.php"
                          .format(key, source_domain))
                db[key] = found[key]
    if not db['DB_NAME'] or not db['DB_USER']:
        raise WPCConfigError("source database credentials for {0} are not "
                             "configured".format(source_domain))

    return SourceSite(
        domain=source_domain,
        docroot=docroot,
        db=DBCredentials(db['DB_USER'], db['DB_PASSWORD'], mysql_host,
                         db['DB_NAME']))


def build_clone_request(controller, domain):
    """Derive the immutable clone request for ``domain`` from config"""
    home_base = _conf(controller, 'clone', 'home-base', WPCVar.wpc_home_base)
    docroot_name = _conf(controller, 'clone', 'docroot', WPCVar.wpc_docroot)
    mysql_host = _conf(controller, 'mysql', 'host', WPCVar.wpc_mysql_host)
    mailbox_user = _conf(controller, 'clone', 'mailbox-user',
                         WPCVar.wpc_mailbox_user)
    length = _conf_number(controller, 'clone', 'password-length',
                          WPCVar.wpc_password_length, cast=int)

    db_name, db_user = derive_db_identifiers(domain)
    site_home = os.path.join(home_base, domain)

    return CloneRequest(
        domain=domain,
        password=RANDOM.gen(length),
        db_name=db_name,
        db_user=db_user,
        email="{0}@{1}".format(mailbox_user, domain),
        site_home=site_home,
        docroot=os.path.join(site_home, docroot_name),
        source=build_source_site(controller, home_base, docroot_name,
                                 mysql_host),
        admin_db=DBCredentials(
            _conf(controller, 'mysql', 'admin-user',
                  WPCVar.wpc_mysql_admin_user),
            _conf(controller, 'mysql', 'admin-password'),
            mysql_host),
        panel=PanelSettings(
            bin=_conf(controller, 'panel', 'bin', WPCVar.wpc_panel_bin),
            package=_conf(controller, 'panel', 'package',
                          WPCVar.wpc_panel_package),
            owner=_conf(controller, 'panel', 'owner',
                        WPCVar.wpc_panel_owner),
            php=_conf(controller, 'panel', 'php', WPCVar.wpc_panel_php)),
        mailbox_user=mailbox_user,
        table_prefix=_conf(controller, 'clone', 'table-prefix',
                           WPCVar.wpc_table_prefix),
        admin_account=_conf(controller, 'clone', 'admin-account',
                            WPCVar.wpc_admin_account),
        report_dir=_conf(controller, 'clone', 'report-dir',
                         WPCVar.wpc_report_dir),
        settle_delay=_conf_number(controller, 'clone', 'settle-delay',
                                  WPCVar.wpc_settle_delay),
        mysql_bin=_conf(controller, 'mysql', 'mysql-bin',
                        WPCVar.wpc_mysql_bin),
        mysqldump_bin=_conf(controller, 'mysql', 'mysqldump-bin',
                            WPCVar.wpc_mysqldump_bin),
        smoke_test=_conf_bool(controller, 'clone', 'smoke-test'),
        smoke_url=_conf(controller, 'clone', 'smoke-test-url',
                        WPCVar.wpc_smoke_url),
        smoke_timeout=_conf_number(controller, 'clone', 'smoke-test-timeout',
                                   WPCVar.wpc_smoke_timeout),
    )


def check_root(controller, request):
    if os.geteuid() != 0:
        return StageResult.fatal('Run as root: sudo wpclone clone {0}'
                                 .format(request.domain))
    return StageResult.ok('running as root')


def remove_existing_site(controller, request):
    """Delete a panel site already occupying the target domain"""
    Log.info(controller, "Checking for existing website...")
    try:
        domains, raw = WPCPanel.list_sites(controller, request.panel.bin)
    except PanelError as e:
        return StageResult.warning("Could not list existing websites: {0}"
                                   .format(e))

    if domains is None:
        Log.debug(controller, "Site list not parseable, "
                  "falling back to text match")
        found = request.domain in (raw or '')
    else:
        found = request.domain.lower() in domains

    if not found:
        Log.info(controller, "No existing website found")
        return StageResult.ok()

    Log.info(controller, "Deleting existing website: {0}"
             .format(request.domain))
    try:
        deleted = WPCPanel.delete_site(controller, request.domain,
                                       request.panel.bin)
    except PanelError as e:
        Log.debug(controller, str(e))
        deleted = False
    if not deleted:
        return StageResult.warning("Website deletion may have failed, "
                                   "continuing anyway...")
    Log.info(controller, "Existing website deleted")
    # Give the panel a moment to finish its own cleanup
    time.sleep(request.settle_delay)
    return StageResult.ok()


def drop_stale_database(controller, request):
    """Drop database and user left by a previous run of this clone"""
    Log.info(controller, "Cleaning up any existing database...")
    statements = [
        "DROP DATABASE IF EXISTS `{0}`".format(
            request.db_name.replace('`', '``')),
        ("DROP USER IF EXISTS %s@'localhost'", (request.db_user,)),
        "FLUSH PRIVILEGES",
    ]
    try:
        WPCMysql.execute_many(controller, request.admin_db, statements)
    except (MySQLConnectionError, StatementExcecutionError) as e:
        Log.debug(controller, "stale database cleanup skipped: {0}"
                  .format(e))
    return StageResult.ok()


def create_site(controller, request):
    Log.wait(controller, "Creating website")
    response = WPCPanel.create_site(
        controller, request.domain,
        package=request.panel.package,
        owner=request.panel.owner,
        email="admin@{0}".format(request.domain),
        php=request.panel.php,
        ssl=False,
        binary=request.panel.bin)
    if not response.success:
        Log.failed(controller, "Creating website")
        return StageResult.fatal("Website creation failed {0}"
                                 .format(response.error_message).strip(),
                                 detail=response.raw)
    Log.valide(controller, "Creating website")
    return StageResult.ok()


def create_mailbox(controller, request):
    Log.wait(controller, "Creating email account")
    try:
        response = WPCPanel.create_email(controller, request.domain,
                                         request.mailbox_user,
                                         request.password,
                                         binary=request.panel.bin)
    except PanelError as e:
        Log.failed(controller, "Creating email account")
        return StageResult.warning("Email account creation failed: {0}"
                                   .format(e))
    if not response.success:
        Log.failed(controller, "Creating email account")
        return StageResult.warning("Email account {0} may not exist"
                                   .format(request.email))
    Log.valide(controller, "Creating email account")
    return StageResult.ok()


def create_database(controller, request):
    Log.wait(controller, "Creating database")
    response = WPCPanel.create_database(controller, request.domain,
                                        request.db_name, request.db_user,
                                        request.password,
                                        binary=request.panel.bin)
    if not response.success:
        Log.failed(controller, "Creating database")
        return StageResult.fatal("Database creation failed {0}"
                                 .format(response.error_message).strip(),
                                 detail=response.raw)
    Log.valide(controller, "Creating database")
    return StageResult.ok()


def site_ownership(request):
    return resolve_ownership(default_strategies(request.admin_account),
                             request.site_home)


def apply_ownership(controller, path, ownership):
    if ownership.changes_owner:
        WPCFileUtils.chown(controller, path, ownership.user,
                           ownership.group, recursive=True)
    elif ownership.mode is not None:
        WPCFileUtils.chmod(controller, path, ownership.mode,
                           recursive=True)


def copy_site_files(controller, request):
    src = request.source.docroot
    if not os.path.isdir(src):
        raise SiteError("Source not found: {0}".format(src))

    Log.info(controller, "Copying website files from {0}"
             .format(request.source.domain))
    WPCFileUtils.copyfiles(controller, src, request.docroot)

    ownership = site_ownership(request)
    apply_ownership(controller, request.docroot, ownership)
    return StageResult.ok("Files copied ({0})".format(ownership.label()))


def rewrite_rules_state(path):
    if not os.path.isfile(path):
        return RULES_ABSENT
    with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
        if HTACCESS_SENTINEL in f.read():
            return RULES_PRESENT
    return RULES_MISSING_BLOCK


def ensure_rewrite_rules(controller, request):
    """
    Make sure the docroot .htaccess carries the WordPress rewrite block.
    A file without the block is backed up and the block is put first.
    """
    path = request.htaccess
    state = rewrite_rules_state(path)
    Log.debug(controller, ".htaccess state: {0}".format(state))

    if state == RULES_PRESENT:
        return StageResult.ok(".htaccess file already exists")

    if state == RULES_ABSENT:
        Log.info(controller, ".htaccess file not found, creating it...")
        content = HTACCESS_BLOCK
    else:
        Log.warn(controller, ".htaccess exists but doesn't contain "
                 "WordPress rules, backing up and updating...")
        backup = "{0}.backup.{1}".format(path, int(time.time()))
        WPCFileUtils.copyfile(controller, path, backup)
        with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
            existing = f.read()
        content = HTACCESS_BLOCK + "\n" + existing

    WPCFileUtils.write(controller, path, content, perm=WPCVar.wpc_file_perms)
    ownership = site_ownership(request)
    if ownership.changes_owner:
        WPCFileUtils.chown(controller, path, ownership.user, ownership.group)
    return StageResult.ok(".htaccess file {0}".format(
        'created' if state == RULES_ABSENT else 'updated'))


def probe_source_database(controller, request):
    """Return the option row count of the source site, raise SiteError"""
    query = "SELECT COUNT(*) FROM `{0}options`".format(request.table_prefix)
    try:
        row = WPCMysql.fetch_one(controller, request.source.db, query)
    except (MySQLConnectionError, StatementExcecutionError) as e:
        Log.debug(controller, str(e))
        raise SiteError("Cannot access source database {0}"
                        .format(request.source.db.database))
    return row[0] if row else 0


def _count_lines(path):
    with open(path, 'rb') as f:
        return sum(1 for _ in f)


def migrate_database(controller, request):
    """Dump the source database and replay it into the new one"""
    Log.info(controller, "Testing source database connection...")
    count = probe_source_database(controller, request)
    Log.info(controller, "Source database accessible ({0} options)"
             .format(count))

    fd, dump_file = tempfile.mkstemp(prefix='wpclone-', suffix='.sql')
    os.close(fd)
    try:
        Log.wait(controller, "Exporting source database")
        exported = WPCMysql.dump(controller, request.source.db,
                                 request.source.db.database, dump_file,
                                 mysqldump=request.mysqldump_bin)
        if not exported or os.path.getsize(dump_file) == 0:
            Log.failed(controller, "Exporting source database")
            return StageResult.fatal("Database export failed or empty")
        Log.valide(controller, "Exporting source database")
        Log.debug(controller, "dump holds {0} lines"
                  .format(_count_lines(dump_file)))

        Log.wait(controller, "Importing to new database")
        if WPCMysql.restore(controller, request.site_db, request.db_name,
                            dump_file, mysql=request.mysql_bin):
            Log.valide(controller, "Importing to new database")
            return StageResult.ok()

        Log.failed(controller, "Importing to new database")
        Log.warn(controller, "Import with site user failed, "
                 "trying with admin credential...")
        if WPCMysql.restore(controller, request.admin_db, request.db_name,
                            dump_file, mysql=request.mysql_bin):
            Log.info(controller, "Database imported successfully "
                     "with admin credential")
            return StageResult.ok()
        return StageResult.fatal("Database import failed")
    finally:
        WPCFileUtils.rm(controller, dump_file)


def url_rewrite_statements(request):
    """Statements moving stored URLs from the source domain to the clone"""
    prefix = request.table_prefix
    new_url = request.new_url
    statements = []
    for option in ('home', 'siteurl'):
        statements.append((
            "UPDATE `{0}options` SET option_value = %s "
            "WHERE option_name = %s".format(prefix),
            (new_url, option)))
    for table, column in URL_COLUMNS:
        for scheme in ('https', 'http'):
            statements.append((
                "UPDATE `{0}{1}` SET `{2}` = REPLACE(`{2}`, %s, %s)"
                .format(prefix, table, column),
                ("{0}://{1}".format(scheme, request.source.domain),
                 new_url)))
    return statements


def rewrite_urls(controller, request):
    Log.wait(controller, "Updating domain in database")
    try:
        WPCMysql.execute_many(controller, request.admin_db.on(request.db_name),
                              url_rewrite_statements(request))
    except (MySQLConnectionError, StatementExcecutionError) as e:
        Log.failed(controller, "Updating domain in database")
        Log.debug(controller, str(e))
        return StageResult.warning("Failed to update domain in database")
    Log.valide(controller, "Updating domain in database")
    return StageResult.ok()


def _php_quote(value):
    return str(value).replace('\\', '\\\\').replace("'", "\\'")


def patch_wp_config_text(text, values):
    """
    Replace each ``define( 'KEY'...`` up to the end of its line with a
    fresh definition. Returns the new text and the number of keys patched.
    """
    patched = 0
    for key, value in values:
        line = "define('{0}', '{1}');".format(key, _php_quote(value))
        text, count = re.subn(r"define\( *'{0}'.*".format(key),
                              lambda m: line, text)
        if count:
            patched += 1
    return text, patched


def patch_wp_config(controller, request):
    path = request.wp_config
    if not os.path.isfile(path):
        return StageResult.warning("wp-config.php file not found")

    Log.info(controller, "Updating wp-config.php...")
    WPCFileUtils.copyfile(controller, path, path + '.backup')
    with open(path, 'r', encoding='utf-8',
              errors='surrogateescape') as f:
        text = f.read()
    text, patched = patch_wp_config_text(
        text, zip(WP_CONFIG_KEYS,
                  (request.db_name, request.db_user, request.password)))
    WPCFileUtils.write(controller, path, text)
    if patched < len(WP_CONFIG_KEYS):
        return StageResult.warning("only {0} of {1} database settings found "
                                   "in wp-config.php"
                                   .format(patched, len(WP_CONFIG_KEYS)))
    return StageResult.ok("wp-config.php updated successfully")


def finalize_permissions(controller, request):
    Log.info(controller, "Setting final permissions...")
    ownership = site_ownership(request)
    if ownership.changes_owner and os.path.isdir(request.site_home):
        WPCFileUtils.chown(controller, request.site_home, ownership.user,
                           ownership.group, recursive=True)
    WPCFileUtils.normalize_modes(controller, request.docroot,
                                 WPCVar.wpc_dir_perms, WPCVar.wpc_file_perms)
    if os.path.isfile(request.wp_config):
        WPCFileUtils.chmod(controller, request.wp_config,
                           WPCVar.wpc_config_perms)
    return StageResult.ok("Permissions set for {0}"
                          .format(ownership.label()))


def render_report(request, created=None):
    created = created or datetime.now().strftime('%a %b %d %H:%M:%S %Y')
    config_status = ('Updated' if os.path.isfile(request.wp_config + '.backup')
                     else 'Not found')
    rules_status = ('Verified/Created' if os.path.isfile(request.htaccess)
                    else 'Missing')
    rule = "================================="
    return "\n".join([
        rule,
        "WordPress Site: {0}".format(request.domain),
        rule,
        "Email: {0}".format(request.email),
        "Database Name: {0}".format(request.db_name),
        "Database User: {0}".format(request.db_user),
        "Database Password: {0}".format(request.password),
        "Files Path: {0}".format(request.docroot),
        "Owner: {0}".format(site_ownership(request).label()),
        "Created: {0}".format(created),
        rule,
        "",
        "WordPress Admin URL: {0}/wp-admin/".format(request.new_url),
        "Database Host: {0}".format(request.admin_db.host),
        "Source Cloned From: {0}".format(request.source.domain),
        "",
        "Files Status:",
        "- wp-config.php: {0}".format(config_status),
        "- .htaccess: {0}".format(rules_status),
        "",
        "Next Steps:",
        "1. Update DNS A record for {0}".format(request.domain),
        "2. Setup SSL certificate via CyberPanel",
        "3. Test website: {0}".format(request.new_url),
        "4. Login to WordPress admin and update settings",
        rule,
        "",
    ])


def write_report(controller, request):
    os.makedirs(request.report_dir, exist_ok=True)
    WPCFileUtils.write(controller, request.report_path,
                       render_report(request), perm=0o600)
    return StageResult.ok("Credentials saved: {0}"
                          .format(request.report_path))


def print_summary(controller, request):
    Log.info(controller, "")
    Log.info(controller, "CLONE COMPLETED SUCCESSFULLY!")
    Log.info(controller, "=================================")
    Log.info(controller, "Domain: {0}".format(request.domain))
    Log.info(controller, "Email: {0}".format(request.email))
    Log.info(controller, "Database: {0}".format(request.db_name))
    Log.info(controller, "DB Password: {0}".format(request.password),
             log=False)
    Log.info(controller, "Files Path: {0}".format(request.docroot))
    Log.info(controller, "Credentials saved: {0}"
             .format(request.report_path))
    Log.info(controller, "")
    Log.info(controller, "IMPORTANT NEXT STEPS:")
    Log.info(controller, "   1. Update DNS for {0}".format(request.domain))
    Log.info(controller, "   2. Setup SSL certificate")
    Log.info(controller, "   3. Test: {0}".format(request.new_url))
    Log.info(controller, "   4. WordPress Admin: {0}/wp-admin/"
             .format(request.new_url))
    return StageResult.ok()


def smoke_test(controller, request):
    """Advisory request against the local web server"""
    if not request.smoke_test:
        return StageResult.ok("smoke test disabled")
    Log.info(controller, "Testing website connectivity...")
    try:
        response = requests.get(request.smoke_url,
                                headers={'Host': request.domain},
                                timeout=request.smoke_timeout)
    except requests.RequestException as e:
        Log.debug(controller, str(e))
        return StageResult.warning("Website may need additional "
                                   "configuration")
    body = response.text.lower()
    if any(marker in body for marker in WPCVar.wpc_smoke_markers):
        Log.info(controller, "Website is responding correctly")
        return StageResult.ok()
    return StageResult.warning("Website may need additional configuration")


def clone_stages():
    """Stages of a clone, in execution order"""
    return [
        Stage('preflight', check_root),
        Stage('remove-existing-site', remove_existing_site, tolerated=True),
        Stage('drop-stale-database', drop_stale_database, tolerated=True),
        Stage('create-site', create_site),
        Stage('create-mailbox', create_mailbox, tolerated=True),
        Stage('create-database', create_database),
        Stage('copy-files', copy_site_files),
        Stage('rewrite-rules', ensure_rewrite_rules),
        Stage('migrate-database', migrate_database),
        Stage('rewrite-urls', rewrite_urls, tolerated=True),
        Stage('patch-config', patch_wp_config, tolerated=True),
        Stage('permissions', finalize_permissions, tolerated=True),
        Stage('report', write_report),
        Stage('summary', print_summary),
        Stage('smoke-test', smoke_test, tolerated=True),
    ]
