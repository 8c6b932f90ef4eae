import unittest

from wpc.core.ownership import (NOOP, AdminAccountStrategy,
                                InheritedOwnerStrategy, Ownership,
                                PermissiveModeStrategy, resolve_ownership)


class TestOwnershipStrategies(unittest.TestCase):

    def admin(self, exists=True):
        return AdminAccountStrategy('admin',
                                    user_exists=lambda name: exists,
                                    group_of=lambda name: 'admin')

    def inherited(self, is_dir=True, owner=('demo1234', 'demo1234')):
        def path_owner(path):
            if owner is None:
                raise KeyError(path)
            return owner
        return InheritedOwnerStrategy(is_dir=lambda path: is_dir,
                                      path_owner=path_owner)

    def test_admin_account_wins_when_present(self):
        strategies = [self.admin(), self.inherited(), PermissiveModeStrategy()]
        ownership = resolve_ownership(strategies, '/home/demo.test')
        self.assertEqual((ownership.user, ownership.group), ('admin', 'admin'))
        self.assertEqual(ownership.source, 'admin-account')

    def test_inherited_owner_when_admin_missing(self):
        strategies = [self.admin(False), self.inherited(),
                      PermissiveModeStrategy()]
        ownership = resolve_ownership(strategies, '/home/demo.test')
        self.assertEqual(ownership.label(), 'demo1234:demo1234')
        self.assertEqual(ownership.source, 'inherited')

    def test_permissive_mode_as_last_resort(self):
        strategies = [self.admin(False), self.inherited(is_dir=False),
                      PermissiveModeStrategy()]
        ownership = resolve_ownership(strategies, '/home/demo.test')
        self.assertFalse(ownership.changes_owner)
        self.assertEqual(ownership.mode, 0o755)
        self.assertEqual(ownership.label(), 'mode 755')

    def test_unknown_uid_skips_inherited(self):
        strategies = [self.inherited(owner=None), PermissiveModeStrategy()]
        ownership = resolve_ownership(strategies, '/home/demo.test')
        self.assertEqual(ownership.source, 'permissive')

    def test_no_strategy_is_noop(self):
        self.assertIs(resolve_ownership([self.admin(False)], '/x'), NOOP)
        self.assertEqual(NOOP.label(), 'unchanged')

    def test_half_ownership_does_not_chown(self):
        self.assertFalse(Ownership(user='admin').changes_owner)
