"""wpclone ownership resolution

Decides which owner/group (or fallback mode) the cloned site files get.
Strategies are tried in order and the first one that returns an
``Ownership`` wins. System lookups are injectable so each strategy can be
exercised without real accounts or files.
"""
import grp
import os
import pwd
from typing import NamedTuple, Optional

from wpc.core.variables import WPCVar


class Ownership(NamedTuple):
    """Owner/group to apply, or a bare mode when ``user`` is None"""
    user: Optional[str] = None
    group: Optional[str] = None
    mode: Optional[int] = None
    source: str = 'noop'

    @property
    def changes_owner(self):
        return bool(self.user and self.group)

    def label(self):
        if self.changes_owner:
            return "{0}:{1}".format(self.user, self.group)
        if self.mode is not None:
            return "mode {0:o}".format(self.mode)
        return "unchanged"


NOOP = Ownership()


def _user_exists(name):
    try:
        pwd.getpwnam(name)
        return True
    except KeyError:
        return False


def _group_of_user(name):
    gid = pwd.getpwnam(name).pw_gid
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return name


def _path_owner(path):
    st = os.stat(path)
    return pwd.getpwuid(st.st_uid).pw_name, grp.getgrgid(st.st_gid).gr_name


class AdminAccountStrategy:
    """Use a fixed administrative account when it exists on the system"""

    def __init__(self, account=WPCVar.wpc_admin_account,
                 user_exists=_user_exists, group_of=_group_of_user):
        self.account = account
        self.user_exists = user_exists
        self.group_of = group_of

    def resolve(self, site_home):
        if not self.account or not self.user_exists(self.account):
            return None
        return Ownership(self.account, self.group_of(self.account),
                         source='admin-account')


class InheritedOwnerStrategy:
    """Reuse the owner/group the panel gave the site home directory"""

    def __init__(self, is_dir=os.path.isdir, path_owner=_path_owner):
        self.is_dir = is_dir
        self.path_owner = path_owner

    def resolve(self, site_home):
        if not self.is_dir(site_home):
            return None
        try:
            user, group = self.path_owner(site_home)
        except (OSError, KeyError):
            return None
        return Ownership(user, group, source='inherited')


class PermissiveModeStrategy:
    """Leave ownership alone and open the mode bits"""

    def __init__(self, mode=WPCVar.wpc_dir_perms):
        self.mode = mode

    def resolve(self, site_home):
        return Ownership(mode=self.mode, source='permissive')


def default_strategies(admin_account=WPCVar.wpc_admin_account):
    return [AdminAccountStrategy(admin_account),
            InheritedOwnerStrategy(),
            PermissiveModeStrategy()]


def resolve_ownership(strategies, site_home):
    """Return the first ownership a strategy resolves, NOOP otherwise"""
    for strategy in strategies:
        ownership = strategy.resolve(site_home)
        if ownership is not None:
            return ownership
    return NOOP
