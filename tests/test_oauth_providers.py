import os
import tempfile
import unittest
from urllib.parse import parse_qs, urlsplit


class TestOAuthProviders(unittest.TestCase):
    def test_packaged_catalog_has_google_first(self):
        from mailsetup.providers.oauth import get_all_oauth_providers

        providers = get_all_oauth_providers()

        self.assertGreaterEqual(len(providers), 1)
        self.assertEqual(providers[0].id, "google")
        self.assertEqual(providers[0].response_type, "code")

    def test_find_by_id(self):
        from mailsetup.providers.oauth import find_oauth_provider

        self.assertEqual(find_oauth_provider("google").label, "Google")
        self.assertIsNone(find_oauth_provider("missing"))

    def test_unreadable_catalog_yields_no_providers(self):
        from mailsetup.providers.oauth import get_all_oauth_providers

        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(get_all_oauth_providers(os.path.join(tmp, "missing.xml")), [])

    def test_catalog_order_is_kept(self):
        from mailsetup.providers.oauth import get_all_oauth_providers

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "oauth.xml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(
                    '<oauth><provider id="b" label="B" /><provider id="a" label="A" /></oauth>'
                )

            self.assertEqual([p.id for p in get_all_oauth_providers(path)], ["b", "a"])

    def test_registration_request_url(self):
        from mailsetup.providers.oauth import OAuthProvider, create_oauth_registration_request

        provider = OAuthProvider(
            id="test",
            auth_endpoint="https://auth.example.com/authorize?prompt=consent",
            response_type="code",
            redirect_uri="http://localhost",
            scope="mail",
            state="xyz",
            client_id="client",
        )

        url = create_oauth_registration_request(provider, "me@example.com")
        parts = urlsplit(url)
        query = parse_qs(parts.query)

        self.assertEqual(parts.netloc, "auth.example.com")
        self.assertEqual(parts.path, "/authorize")
        self.assertEqual(query["prompt"], ["consent"])
        self.assertEqual(query["response_type"], ["code"])
        self.assertEqual(query["client_id"], ["client"])
        self.assertEqual(query["redirect_uri"], ["http://localhost"])
        self.assertEqual(query["scope"], ["mail"])
        self.assertEqual(query["state"], ["xyz"])
        self.assertEqual(query["login_hint"], ["me@example.com"])


if __name__ == "__main__":
    unittest.main()
