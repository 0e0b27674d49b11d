import unittest


class TestProviderMatcher(unittest.TestCase):
    def test_plain_pattern_is_case_insensitive_equality(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("Example.COM", "example.com"))
        self.assertTrue(match_provider("example.com", "EXAMPLE.com"))
        self.assertFalse(match_provider("example.com", "example.org"))
        self.assertFalse(match_provider("mail.example.com", "example.com"))

    def test_global_wildcard_matches_any_domain(self):
        from mailsetup.providers.matcher import match_provider

        for domain in ("a", "example.com", "x.y.z.example.org"):
            self.assertTrue(match_provider(domain, "*"))

    def test_global_wildcard_prefix(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("mail.example.com", "*.example.com"))
        self.assertTrue(match_provider("a.b.example.com", "*.example.com"))
        self.assertFalse(match_provider("mail.example.org", "*.example.com"))
        # "*" may be empty but the "." of the suffix is still required
        self.assertFalse(match_provider("example.com", "*.example.com"))

    def test_global_wildcard_suffix(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("gmx.de", "gmx.*"))
        self.assertTrue(match_provider("GMX.net", "gmx.*"))
        self.assertTrue(match_provider("gmx.", "gmx.*"))
        self.assertFalse(match_provider("gmx", "gmx.*"))

    def test_global_wildcard_in_the_middle(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("mail.foo.com", "mail.*.com"))
        self.assertTrue(match_provider("mail..com", "mail.*.com"))
        self.assertFalse(match_provider("mail.com", "mail.*.com"))

    def test_single_character_wildcard(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("a1b", "a?b"))
        self.assertFalse(match_provider("ab", "a?b"))
        self.assertFalse(match_provider("a12b", "a?b"))
        self.assertTrue(match_provider("yahoo.co.uk", "yahoo.co.??"))
        self.assertFalse(match_provider("yahoo.co.u", "yahoo.co.??"))

    def test_single_character_wildcards_around_global(self):
        from mailsetup.providers.matcher import match_provider

        self.assertTrue(match_provider("ab.example.c1", "a?.*.c?"))
        self.assertFalse(match_provider("ab.example.d1", "a?.*.c?"))

    def test_two_global_wildcards_are_rejected(self):
        from mailsetup.errors import InvalidPattern
        from mailsetup.providers.matcher import match_provider

        with self.assertRaises(InvalidPattern) as ctx:
            match_provider("a.b.com", "*.*.com")
        self.assertEqual(ctx.exception.pattern, "*.*.com")

    def test_short_candidate_is_no_match_not_error(self):
        from mailsetup.providers.matcher import match_provider

        self.assertFalse(match_provider("", "a?b"))
        self.assertFalse(match_provider("ab", "abc*def"))


if __name__ == "__main__":
    unittest.main()
