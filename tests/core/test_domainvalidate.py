import unittest

from wpc.core.domainvalidate import WPCDomain
from wpc.core.exc import WPCArgumentError


class TestDomainNormalize(unittest.TestCase):

    def test_strips_scheme_and_www(self):
        self.assertEqual(WPCDomain.normalize('https://www.example.com'),
                         'example.com')

    def test_strips_http_scheme(self):
        self.assertEqual(WPCDomain.normalize('http://example.com'),
                         'example.com')

    def test_strips_surrounding_whitespace(self):
        self.assertEqual(WPCDomain.normalize('  www.example.com \n'),
                         'example.com')

    def test_leaves_remainder_unchanged(self):
        self.assertEqual(WPCDomain.normalize('example.com/blog/'),
                         'example.com/blog/')
        self.assertEqual(WPCDomain.normalize('shop.www.example.com'),
                         'shop.www.example.com')

    def test_only_one_www_prefix_removed(self):
        self.assertEqual(WPCDomain.normalize('www.www.example.com'),
                         'www.example.com')

    def test_validate_rejects_empty(self):
        for value in ('', '   ', 'https://', 'http://www.'):
            with self.assertRaises(WPCArgumentError):
                WPCDomain.validate(None, value)

    def test_slug(self):
        self.assertEqual(WPCDomain.slug('my.site.example.com'),
                         'my_site_example_com')
