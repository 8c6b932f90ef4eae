from unittest.mock import Mock

import pytest

from wpc.cli.plugins.site_functions import (CloneRequest, PanelSettings,
                                            SourceSite)
from wpc.core.mysql import DBCredentials


class Dummy:
    """Stand-in controller: only ``app.log`` is used by core helpers"""
    class App:
        class Log:
            def debug(self, *args, **kwargs):
                pass

            def error(self, *args, **kwargs):
                pass

            def info(self, *args, **kwargs):
                pass

            def warning(self, *args, **kwargs):
                pass
        log = Log()
    app = App()


@pytest.fixture
def controller():
    return Dummy()


@pytest.fixture
def mock_controller():
    return Mock()


def build_request(base, domain='demo.test', source='src.test', **kw):
    home = base / 'home'
    values = dict(
        domain=domain,
        password='s3cretPassw0rd',
        db_name=domain.replace('.', '_') + '_new_db',
        db_user=domain.replace('.', '_') + '_new_user',
        email='contact@' + domain,
        site_home=str(home / domain),
        docroot=str(home / domain / 'public_html'),
        source=SourceSite(source, str(home / source / 'public_html'),
                          DBCredentials('src_user', 'src_pass', 'localhost',
                                        'src_db')),
        admin_db=DBCredentials('root', 'rootpw', 'localhost'),
        panel=PanelSettings(),
        admin_account='wpclone-no-such-account',
        report_dir=str(base / 'root'),
        settle_delay=0,
    )
    values.update(kw)
    return CloneRequest(**values)


@pytest.fixture
def make_request(tmp_path):
    def _make(**kw):
        return build_request(tmp_path, **kw)
    return _make
