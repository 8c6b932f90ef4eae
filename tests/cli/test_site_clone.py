import os
import stat
from types import SimpleNamespace

import pytest

import wpc.cli.plugins.site_functions as site_functions
from wpc.cli.main import WPCTestApp
from wpc.cli.plugins.site_clone import WPCSiteCloneController
from wpc.cli.plugins.site_functions import build_clone_request
from wpc.core.exc import WPCConfigError
from wpc.core.mysql import WPCMysql
from wpc.core.panel import PanelResponse, WPCPanel

SOURCE_WP_CONFIG = """<?php
define( 'DB_NAME', 'src_db' );
define( 'DB_USER', 'src_user' );
define( 'DB_PASSWORD', 'src_pass' );
define( 'DB_HOST', 'localhost' );
$table_prefix = 'wp_';
require_once ABSPATH . 'wp-settings.php';
"""


def make_source(home):
    docroot = home / 'src.test' / 'public_html'
    docroot.mkdir(parents=True)
    (docroot / 'index.php').write_text('<?php require "wp-blog-header.php";')
    (docroot / 'wp-config.php').write_text(SOURCE_WP_CONFIG)
    return docroot


def configure(app, tmp_path):
    app.config.set('clone', 'home-base', str(tmp_path / 'home'))
    app.config.set('clone', 'report-dir', str(tmp_path / 'root'))
    app.config.set('clone', 'admin-account', 'wpclone-no-such-account')
    app.config.set('clone', 'settle-delay', '0')
    app.config.set('mysql', 'admin-password', 'rootpw')


class FakeServer:
    """Records every call made to the panel CLI, MySQL and HTTP"""

    def __init__(self, home):
        self.home = home
        self.panel = []
        self.statements = []
        self.probes = []
        self.dumps = []
        self.restores = []
        self.http = []

    def install(self, monkeypatch):
        ok = PanelResponse(True, '', {'success': 1}, '{"success": 1}')

        def list_sites(controller, binary='cyberpanel'):
            self.panel.append(('listWebsitesJson',))
            return [], '[]'

        def create_site(controller, domain, **kw):
            self.panel.append(('createWebsite', domain))
            (self.home / domain / 'public_html').mkdir(parents=True,
                                                       exist_ok=True)
            return ok

        def create_email(controller, domain, username, password, **kw):
            self.panel.append(('createEmail', domain, username))
            return ok

        def create_database(controller, domain, db_name, db_user,
                            db_password, **kw):
            self.panel.append(('createDatabase', db_name, db_user))
            return ok

        def fetch_one(controller, creds, query):
            self.probes.append((creds, query))
            return (42,)

        def dump(controller, creds, database, dump_file, mysqldump=None):
            self.dumps.append(dump_file)
            with open(dump_file, 'w') as f:
                f.write("INSERT INTO wp_options VALUES (1);\n")
            return True

        def restore(controller, creds, database, dump_file, mysql=None):
            self.restores.append((creds, database))
            return True

        def execute_many(controller, creds, statements, **kw):
            self.statements.append((creds, list(statements)))
            return len(self.statements[-1][1])

        def get(url, headers=None, timeout=None):
            self.http.append((url, headers))
            return SimpleNamespace(text='<html>WordPress</html>')

        monkeypatch.setattr(WPCPanel, 'list_sites', list_sites)
        monkeypatch.setattr(WPCPanel, 'create_site', create_site)
        monkeypatch.setattr(WPCPanel, 'create_email', create_email)
        monkeypatch.setattr(WPCPanel, 'create_database', create_database)
        monkeypatch.setattr(WPCMysql, 'fetch_one', fetch_one)
        monkeypatch.setattr(WPCMysql, 'dump', dump)
        monkeypatch.setattr(WPCMysql, 'restore', restore)
        monkeypatch.setattr(WPCMysql, 'execute_many', execute_many)
        monkeypatch.setattr(site_functions.requests, 'get', get)
        monkeypatch.setattr(site_functions.os, 'geteuid', lambda: 0)


def test_clone_end_to_end(tmp_path, monkeypatch):
    home = tmp_path / 'home'
    make_source(home)
    server = FakeServer(home)
    server.install(monkeypatch)

    argv = ['clone', 'https://www.demo.test', '--source', 'src.test']
    with WPCTestApp(argv=argv) as app:
        configure(app, tmp_path)
        app.run()
        exit_code = app.exit_code

    assert exit_code == 0

    created = [call[0] for call in server.panel]
    assert created.count('createWebsite') == 1
    assert created.count('createEmail') == 1
    assert created.count('createDatabase') == 1
    assert ('createDatabase', 'demo_test_new_db',
            'demo_test_new_user') in server.panel

    docroot = home / 'demo.test' / 'public_html'
    assert (docroot / 'index.php').is_file()
    assert '# BEGIN WordPress' in (docroot / '.htaccess').read_text()

    # source credentials come from the source wp-config.php
    assert server.probes[0][0].database == 'src_db'
    assert server.probes[0][0].user == 'src_user'
    assert len(server.dumps) == 1
    assert not os.path.exists(server.dumps[0])
    assert server.restores == [(server.restores[0][0], 'demo_test_new_db')]
    assert server.restores[0][0].user == 'demo_test_new_user'

    cleanup = [statements for creds, statements in server.statements
               if creds.database is None]
    assert len(cleanup) == 1
    assert cleanup[0][0] == "DROP DATABASE IF EXISTS `demo_test_new_db`"
    assert cleanup[0][1][1] == ('demo_test_new_user',)
    assert cleanup[0][2] == "FLUSH PRIVILEGES"
    assert server.statements[0][0].user == 'root'

    rewrites = [statements for creds, statements in server.statements
                if creds.database == 'demo_test_new_db']
    assert len(rewrites) == 1
    options = [args[1] for sql, args in rewrites[0] if 'wp_options' in sql]
    assert options == ['home', 'siteurl']
    columns = {sql.split('SET ')[1].split(' =')[0]
               for sql, args in rewrites[0] if 'REPLACE' in sql}
    assert len(columns) == 3

    wp_config = (docroot / 'wp-config.php').read_text()
    assert "define('DB_NAME', 'demo_test_new_db');" in wp_config
    assert "define('DB_USER', 'demo_test_new_user');" in wp_config
    assert "define('DB_PASSWORD', '" in wp_config
    assert 'src_pass' not in wp_config
    assert (docroot / 'wp-config.php.backup').is_file()
    assert stat.S_IMODE(os.stat(docroot / 'wp-config.php').st_mode) == 0o600

    report = tmp_path / 'root' / 'demo.test_credentials.txt'
    assert report.is_file()
    assert stat.S_IMODE(os.stat(report).st_mode) == 0o600
    text = report.read_text()
    assert 'WordPress Site: demo.test' in text
    assert 'Source Cloned From: src.test' in text
    assert os.listdir(tmp_path / 'root') == ['demo.test_credentials.txt']

    assert server.http == [('http://localhost/', {'Host': 'demo.test'})]


def test_clone_without_source_fails(tmp_path, monkeypatch):
    server = FakeServer(tmp_path / 'home')
    server.install(monkeypatch)
    with WPCTestApp(argv=['clone', 'demo.test']) as app:
        configure(app, tmp_path)
        app.run()
        exit_code = app.exit_code
    assert exit_code == 1
    assert server.panel == []


def test_missing_source_files_stop_clone(tmp_path, monkeypatch):
    server = FakeServer(tmp_path / 'home')
    server.install(monkeypatch)
    argv = ['clone', 'demo.test', '--source', 'src.test',
            '--source-db', 'src_db', '--source-db-user', 'src_user',
            '--no-smoke-test']
    with WPCTestApp(argv=argv) as app:
        configure(app, tmp_path)
        app.run()
        exit_code = app.exit_code
    assert exit_code == 1
    assert server.dumps == []
    assert not (tmp_path / 'root').exists()


def test_build_clone_request_from_config(tmp_path):
    home = tmp_path / 'home'
    make_source(home)
    with WPCTestApp(argv=[]) as app:
        configure(app, tmp_path)
        app.config.set('clone', 'source-domain', 'www.src.test')
        app.config.set('clone', 'source-db-name', 'other_db')
        app.config.set('panel', 'php', '8.2')
        controller = WPCSiteCloneController()
        controller.app = app
        request = build_clone_request(controller, 'example.com')

    assert request.db_name == 'example_com_new_db'
    assert request.db_user == 'example_com_new_user'
    assert request.email == 'contact@example.com'
    assert request.docroot == str(home / 'example.com' / 'public_html')
    assert request.report_path == str(tmp_path / 'root' /
                                      'example.com_credentials.txt')
    assert len(request.password) == 25
    assert request.password.isalnum()
    assert request.new_url == 'https://example.com'
    assert request.panel.php == '8.2'
    assert request.source.domain == 'src.test'
    # configured value wins, the rest is read from wp-config.php
    assert request.source.db.database == 'other_db'
    assert request.source.db.user == 'src_user'
    assert request.admin_db.password == 'rootpw'
    assert request.smoke_test is True


def test_build_clone_request_without_database(tmp_path):
    with WPCTestApp(argv=[]) as app:
        configure(app, tmp_path)
        app.config.set('clone', 'source-domain', 'src.test')
        controller = WPCSiteCloneController()
        controller.app = app
        with pytest.raises(WPCConfigError):
            build_clone_request(controller, 'example.com')


@pytest.mark.parametrize('key,value', [('password-length', 'long'),
                                       ('settle-delay', '2s'),
                                       ('smoke-test-timeout', 'ten')])
def test_build_clone_request_bad_number(tmp_path, key, value):
    make_source(tmp_path / 'home')
    with WPCTestApp(argv=[]) as app:
        configure(app, tmp_path)
        app.config.set('clone', 'source-domain', 'src.test')
        app.config.set('clone', key, value)
        controller = WPCSiteCloneController()
        controller.app = app
        with pytest.raises(WPCConfigError) as excinfo:
            build_clone_request(controller, 'example.com')
    assert key in str(excinfo.value)


def test_clone_with_bad_number_exits_cleanly(tmp_path, monkeypatch):
    make_source(tmp_path / 'home')
    server = FakeServer(tmp_path / 'home')
    server.install(monkeypatch)
    argv = ['clone', 'demo.test', '--source', 'src.test']
    with WPCTestApp(argv=argv) as app:
        configure(app, tmp_path)
        app.config.set('clone', 'password-length', 'twenty')
        app.run()
        exit_code = app.exit_code
    assert exit_code == 1
    assert server.panel == []
