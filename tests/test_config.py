import os
import unittest


class TestConfig(unittest.TestCase):
    def tearDown(self):
        for key in (
            "MAILSETUP_WORKER_THREADS",
            "MAILSETUP_DEFAULT_CHECK_INTERVAL",
            "MAILSETUP_PROVIDERS_PATH",
            "MAILSETUP_VENDOR_POLICY",
            "MAILSETUP_DB_URL",
            "MAILSETUP_BACKUP_PATH",
        ):
            os.environ.pop(key, None)

    def test_worker_threads_defaults_to_4(self):
        from mailsetup.utils.config import get_worker_threads

        self.assertEqual(get_worker_threads(), 4)

    def test_worker_threads_invalid_falls_back(self):
        from mailsetup.utils.config import get_worker_threads

        os.environ["MAILSETUP_WORKER_THREADS"] = "many"
        self.assertEqual(get_worker_threads(), 4)

    def test_worker_threads_clamped_to_minimum_1(self):
        from mailsetup.utils.config import get_worker_threads

        os.environ["MAILSETUP_WORKER_THREADS"] = "0"
        self.assertEqual(get_worker_threads(), 1)

    def test_check_interval_defaults_to_15_minutes(self):
        from mailsetup.utils.config import get_default_check_interval

        self.assertEqual(get_default_check_interval(), 15)

    def test_check_interval_override(self):
        from mailsetup.utils.config import get_default_check_interval

        os.environ["MAILSETUP_DEFAULT_CHECK_INTERVAL"] = "30"
        self.assertEqual(get_default_check_interval(), 30)

    def test_providers_path_defaults_to_packaged_catalog(self):
        from mailsetup.utils.config import get_providers_path

        path = get_providers_path()
        self.assertTrue(path.endswith("providers.xml"))
        self.assertTrue(os.path.exists(path))

        os.environ["MAILSETUP_PROVIDERS_PATH"] = "/tmp/custom.xml"
        self.assertEqual(get_providers_path(), "/tmp/custom.xml")

    def test_vendor_policy_blank_means_none(self):
        from mailsetup.utils.config import get_vendor_policy

        os.environ["MAILSETUP_VENDOR_POLICY"] = "   "
        self.assertIsNone(get_vendor_policy())

    def test_store_locations_read_environment_on_each_call(self):
        from mailsetup.utils import config
        from mailsetup.utils.config import get_backup_path, get_db_url

        self.assertEqual(get_db_url(), config.DEFAULT_DB_URL)
        self.assertEqual(get_backup_path(), config.DEFAULT_BACKUP_PATH)

        os.environ["MAILSETUP_DB_URL"] = "sqlite:////tmp/other.db"
        os.environ["MAILSETUP_BACKUP_PATH"] = " /tmp/other.json "
        self.assertEqual(get_db_url(), "sqlite:////tmp/other.db")
        self.assertEqual(get_backup_path(), "/tmp/other.json")


class TestVendorPolicyLoader(unittest.TestCase):
    def tearDown(self):
        from mailsetup.providers.vendor import VendorPolicyLoader

        os.environ.pop("MAILSETUP_VENDOR_POLICY", None)
        VendorPolicyLoader.clear_instance()

    def test_unloadable_policy_never_matches(self):
        from mailsetup.providers.vendor import VendorPolicyLoader

        os.environ["MAILSETUP_VENDOR_POLICY"] = "no_such_module_for_mailsetup:hook"
        VendorPolicyLoader.clear_instance()

        self.assertIsNone(VendorPolicyLoader.get_instance().find_provider_for_domain("example.com"))

    def test_injected_policy_is_used(self):
        from mailsetup.providers.vendor import VendorPolicyLoader

        VendorPolicyLoader.inject_policy_for_test(
            lambda domain: {"in_uri": "imap://in.$domain", "out_uri": "smtp://out.$domain"}
        )

        provider = VendorPolicyLoader.get_instance().find_provider_for_domain("example.com")
        self.assertEqual(provider.incoming_uri_template, "imap://in.$domain")
        self.assertIsNone(provider.incoming_username_template)


class TestRetryOnFail(unittest.TestCase):
    def test_retries_until_success(self):
        from mailsetup.utils import retry_on_fail

        calls = []

        @retry_on_fail(max_retries=2, retry_delay=0, exceptions=OSError)
        def _flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OSError("busy")
            return "ok"

        self.assertEqual(_flaky(), "ok")
        self.assertEqual(len(calls), 3)

    def test_gives_up_after_max_retries(self):
        from mailsetup.utils import retry_on_fail

        calls = []

        @retry_on_fail(max_retries=1, retry_delay=0, exceptions=OSError, log_failure=False)
        def _broken():
            calls.append(1)
            raise OSError("down")

        with self.assertRaises(OSError):
            _broken()
        self.assertEqual(len(calls), 2)

    def test_other_exceptions_are_not_retried(self):
        from mailsetup.utils import retry_on_fail

        calls = []

        @retry_on_fail(max_retries=3, retry_delay=0, exceptions=OSError)
        def _wrong():
            calls.append(1)
            raise ValueError("bad")

        with self.assertRaises(ValueError):
            _wrong()
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
