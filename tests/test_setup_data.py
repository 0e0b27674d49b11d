import unittest


def _populated_setup_data():
    from mailsetup.model.account import Account, Policy
    from mailsetup.model.host_auth import host_auth_from_uri
    from mailsetup.setup.flow import CHECK_INCOMING, CHECK_OUTGOING, FlowMode, SetupData

    account = Account(
        id=7,
        display_name="Work",
        email_address="me@example.com",
        sender_name="Me",
        signature="--\nMe",
        flags=3,
        sync_interval=15,
        sync_lookback=2,
        security_sync_key="key-1",
        host_auth_recv=host_auth_from_uri("imap+ssl+://me:pw@imap.example.com"),
        host_auth_send=host_auth_from_uri("smtp+tls+://me:pw@smtp.example.com:587"),
    )
    setup_data = SetupData(FlowMode.EDIT, account)
    setup_data.flow_account_type = "mailsetup.pop_imap"
    setup_data.username = "me@example.com"
    setup_data.password = "pw"
    setup_data.check_settings_mode = CHECK_INCOMING | CHECK_OUTGOING
    setup_data.allow_autodiscover = False
    setup_data.set_policy(Policy(password_min_length=8, protocol_policies_unsupported="x"))
    setup_data.auto_setup = True
    setup_data.is_default = True
    setup_data.account_authenticator_response = {"token": "abc"}
    return setup_data


class TestSetupData(unittest.TestCase):
    def test_init_twice_yields_identical_fresh_state(self):
        from mailsetup.setup.flow import FlowMode

        setup_data = _populated_setup_data()
        previous_account = setup_data.account

        setup_data.init(FlowMode.NORMAL)
        first = setup_data.to_dict()
        first_account = setup_data.account
        setup_data.init(FlowMode.NORMAL)

        self.assertEqual(setup_data.to_dict(), first)
        self.assertIsNot(setup_data.account, first_account)
        self.assertIsNot(setup_data.account, previous_account)
        self.assertIsNone(setup_data.account.id)
        self.assertIsNone(setup_data.account.host_auth_recv)
        self.assertIsNone(setup_data.username)
        self.assertIsNone(setup_data.password)
        self.assertIsNone(setup_data.policy)
        self.assertEqual(setup_data.check_settings_mode, 0)
        self.assertTrue(setup_data.allow_autodiscover)
        self.assertFalse(setup_data.auto_setup)
        self.assertFalse(setup_data.is_default)

    def test_init_adopts_supplied_account(self):
        from mailsetup.model.account import Account
        from mailsetup.setup.flow import FlowMode, SetupData

        account = Account(id=3)
        setup_data = SetupData()
        setup_data.init(FlowMode.EDIT, account)

        self.assertIs(setup_data.account, account)
        self.assertTrue(setup_data.is_edit())

    def test_check_bits(self):
        from mailsetup.setup.flow import CHECK_AUTODISCOVER, CHECK_OUTGOING, SetupData

        setup_data = SetupData()
        setup_data.check_settings_mode = CHECK_OUTGOING | CHECK_AUTODISCOVER

        self.assertFalse(setup_data.is_check_incoming())
        self.assertTrue(setup_data.is_check_outgoing())
        self.assertTrue(setup_data.is_check_autodiscover())

    def test_set_policy_updates_account(self):
        from mailsetup.model.account import Policy
        from mailsetup.setup.flow import SetupData

        setup_data = SetupData()
        policy = Policy(require_remote_wipe=True)
        setup_data.set_policy(policy)

        self.assertIs(setup_data.account.policy, policy)

    def test_bytes_round_trip(self):
        from mailsetup.setup.flow import FlowMode, SetupData

        setup_data = _populated_setup_data()

        restored = SetupData.from_bytes(setup_data.to_bytes())

        self.assertEqual(restored, setup_data)
        self.assertEqual(restored.flow_mode, FlowMode.EDIT)
        self.assertEqual(restored.account.host_auth_send.port, 587)
        self.assertEqual(restored.policy.password_min_length, 8)
        self.assertEqual(restored.account_authenticator_response, {"token": "abc"})

    def test_unsupported_version_is_rejected(self):
        from mailsetup.setup.flow import SetupData

        data = _populated_setup_data().to_dict()
        data["version"] = 99

        with self.assertRaises(ValueError):
            SetupData.from_dict(data)

    def test_malformed_bundle_is_rejected(self):
        from mailsetup.setup.flow import SetupData

        for bundle in (b"\xff\xfe", b"not json", b"[1, 2]", b'{"version": 1}'):
            with self.assertRaises(ValueError):
                SetupData.from_bytes(bundle)

    def test_debug_string_masks_password(self):
        setup_data = _populated_setup_data()
        setup_data.password = "hunter2secret"
        setup_data.account.host_auth_recv.password = "hunter2secret"

        text = setup_data.debug_string()

        self.assertNotIn("hunter2secret", text)
        self.assertIn("EDIT", text)
        self.assertIn("me@example.com", text)

    def test_builder(self):
        from mailsetup.setup.flow import FlowMode, SetupData

        setup_data = (
            SetupData.builder(FlowMode.ACCOUNT_MANAGER_EAS)
            .with_credentials("me@example.com", "pw")
            .allow_autodiscover(False)
            .with_authenticator_response("handle")
            .build()
        )

        self.assertEqual(setup_data.flow_mode, FlowMode.ACCOUNT_MANAGER_EAS)
        self.assertTrue(setup_data.flow_mode.is_account_manager())
        self.assertEqual(setup_data.username, "me@example.com")
        self.assertFalse(setup_data.allow_autodiscover)
        self.assertEqual(setup_data.account_authenticator_response, "handle")

    def test_terminal_modes(self):
        from mailsetup.setup.flow import FlowMode

        self.assertTrue(FlowMode.RETURN_TO_CALLER.is_terminal())
        self.assertTrue(FlowMode.RETURN_TO_MESSAGE_LIST.is_terminal())
        self.assertFalse(FlowMode.EDIT.is_terminal())


if __name__ == "__main__":
    unittest.main()
