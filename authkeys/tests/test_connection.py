import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, call, patch

import ldap

from authkeys.connection import check_root_ca_file, connect
from authkeys.exceptions import BindError, DirectoryConnectionError, TLSError

from .utils import make_config


class ConnectTestCase(unittest.TestCase):
    def setUp(self):
        self.ldap_object = MagicMock()
        patcher = patch("authkeys.ldap.initialize", return_value=self.ldap_object)
        self.initialize = patcher.start()
        self.addCleanup(patcher.stop)


class TestConnect(ConnectTestCase):
    """Test establishing the directory connection."""

    def test_anonymous(self):
        config = make_config(dial_timeout=7)
        self.assertIs(connect(config), self.ldap_object)
        self.initialize.assert_called_once_with("ldap://ldap.example.com:389")
        self.ldap_object.set_option.assert_has_calls(
            [
                call(ldap.OPT_NETWORK_TIMEOUT, 7.0),
                call(ldap.OPT_TIMEOUT, 7.0),
                call(ldap.OPT_DEREF, ldap.DEREF_NEVER),
                call(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND),
            ],
            any_order=True,
        )
        self.ldap_object.start_tls_s.assert_called_once_with()
        self.ldap_object.simple_bind_s.assert_not_called()
        self.ldap_object.unbind_s.assert_not_called()

    def test_new_tls_context_comes_last(self):
        connect(make_config())
        self.assertEqual(
            self.ldap_object.set_option.call_args_list[-1],
            call(ldap.OPT_X_TLS_NEWCTX, 0),
        )

    def test_bind(self):
        config = make_config(bind_dn="cn=reader,dc=example,dc=com", bind_pw="secret")
        connect(config)
        self.ldap_object.simple_bind_s.assert_called_once_with(
            "cn=reader,dc=example,dc=com", "secret"
        )

    def test_tls_before_bind(self):
        config = make_config(bind_dn="cn=reader,dc=example,dc=com", bind_pw="secret")
        connect(config)
        names = [c[0] for c in self.ldap_object.method_calls]
        self.assertLess(names.index("start_tls_s"), names.index("simple_bind_s"))

    def test_bind_rejected(self):
        self.ldap_object.simple_bind_s.side_effect = ldap.INVALID_CREDENTIALS(
            {"desc": "Invalid credentials"}
        )
        config = make_config(bind_dn="cn=reader,dc=example,dc=com", bind_pw="wrong")
        with self.assertRaises(BindError) as cm:
            connect(config)
        self.assertIn("Invalid credentials", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, ldap.INVALID_CREDENTIALS)
        self.ldap_object.unbind_s.assert_called_once_with()

    def test_server_down(self):
        self.ldap_object.start_tls_s.side_effect = ldap.SERVER_DOWN(
            {"desc": "Can't contact LDAP server"}
        )
        with self.assertRaises(DirectoryConnectionError) as cm:
            connect(make_config())
        self.assertIn("ldap.example.com:389", str(cm.exception))
        self.ldap_object.unbind_s.assert_called_once_with()

    def test_timeout(self):
        self.ldap_object.start_tls_s.side_effect = ldap.TIMEOUT({"desc": "Timed out"})
        with self.assertRaises(DirectoryConnectionError):
            connect(make_config())

    def test_certificate_not_trusted(self):
        self.ldap_object.start_tls_s.side_effect = ldap.CONNECT_ERROR(
            {
                "desc": "Connect error",
                "info": "error:0A000086:SSL routines::certificate verify failed",
            }
        )
        with self.assertRaises(TLSError) as cm:
            connect(make_config())
        self.assertIn("certificate verify failed", str(cm.exception))
        self.ldap_object.simple_bind_s.assert_not_called()
        self.ldap_object.search_s.assert_not_called()
        self.ldap_object.unbind_s.assert_called_once_with()

    def test_release_failure_does_not_mask_error(self):
        self.ldap_object.start_tls_s.side_effect = ldap.CONNECT_ERROR({"desc": "Connect error"})
        self.ldap_object.unbind_s.side_effect = ldap.LDAPError({"desc": "unbind failed"})
        with self.assertRaises(TLSError), self.assertLogs("authkeys.connection", level="WARNING"):
            connect(make_config())

    def test_bad_uri(self):
        self.initialize.side_effect = ldap.LDAPError({"desc": "Bad parameter to an ldap routine"})
        with self.assertRaises(DirectoryConnectionError):
            connect(make_config())

    def test_root_ca_file_installed(self):
        config = make_config(root_ca_file=Path("/etc/ssl/ldap-ca.pem"))
        with patch("authkeys.connection.check_root_ca_file") as check:
            connect(config)
        check.assert_called_once_with(Path("/etc/ssl/ldap-ca.pem"))
        self.ldap_object.set_option.assert_any_call(
            ldap.OPT_X_TLS_CACERTFILE, "/etc/ssl/ldap-ca.pem"
        )

    def test_unusable_root_ca_file_stops_before_tls(self):
        config = make_config(root_ca_file=Path("/nonexistent/ca.pem"))
        with self.assertRaises(TLSError):
            connect(config)
        self.ldap_object.start_tls_s.assert_not_called()
        self.ldap_object.unbind_s.assert_called_once_with()


class TestCheckRootCAFile(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.dir = Path(self.tmpdir.name)

    def test_missing(self):
        with self.assertRaises(TLSError) as cm:
            check_root_ca_file(self.dir / "ca.pem")
        self.assertIn("does not exist", str(cm.exception))

    def test_directory(self):
        with self.assertRaises(TLSError) as cm:
            check_root_ca_file(self.dir)
        self.assertIn("not a file", str(cm.exception))

    def test_not_pem(self):
        path = self.dir / "ca.pem"
        path.write_text("this is not a certificate\n", encoding="utf-8")
        with self.assertRaises(TLSError):
            check_root_ca_file(path)

    def test_truncated_pem(self):
        path = self.dir / "ca.pem"
        path.write_text(
            "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n",
            encoding="utf-8",
        )
        with self.assertRaises(TLSError):
            check_root_ca_file(path)
