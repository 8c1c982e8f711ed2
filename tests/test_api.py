import ssl
import sys
import unittest
from unittest import mock
from urllib.parse import quote

from pysqladapt.base import BaseConnection, BaseEngine, BaseGenerator, Explorer
from pysqladapt.connection import ConnectionParameters, ConnectionSSLMode
from pysqladapt.factory import (
    get_dialect,
    get_parameters,
    load_bundled_dialect,
    register_dialect,
    unregister_dialect,
)


class CustomEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "custom"

    @property
    def aliases(self) -> tuple[str, ...]:
        return ("custom-alias",)

    def get_generator_type(self) -> type[BaseGenerator]:
        raise NotImplementedError()

    def get_connection_type(self) -> type[BaseConnection]:
        raise NotImplementedError()

    def get_explorer_type(self) -> type[Explorer]:
        raise NotImplementedError()


class TestDialect(unittest.TestCase):
    def test_dialect_registered(self) -> None:
        engine = CustomEngine()
        register_dialect(engine)
        try:
            self.assertIs(get_dialect("custom"), engine)
            self.assertIs(get_dialect("custom-alias"), engine)
            with self.assertRaises(ValueError):
                register_dialect(CustomEngine())
        finally:
            unregister_dialect("custom-alias")

        with self.assertRaises(ValueError):
            get_dialect("custom")
        with self.assertRaises(ValueError):
            get_dialect("custom-alias")

    def test_dialect_unknown(self) -> None:
        with self.assertRaises(ValueError):
            get_dialect("unknown")

    def test_dialect_alias(self) -> None:
        self.assertIs(get_dialect("postgres"), get_dialect("postgresql"))
        self.assertEqual(get_dialect("postgres").name, "postgresql")

    def test_dialect_missing_driver(self) -> None:
        with mock.patch.dict(sys.modules):
            sys.modules.pop("pysqladapt.dialect.postgresql.dependency", None)
            sys.modules["asyncpg"] = None  # type: ignore
            with self.assertRaises(RuntimeError) as cm:
                load_bundled_dialect("postgresql")

        self.assertIn("asyncpg", str(cm.exception))
        self.assertIn("pysqladapt[postgresql]", str(cm.exception))


class TestConnectionString(unittest.TestCase):
    def test_connection_string(self) -> None:
        host = "server.example.com"
        port = 2310
        username = "my+user@example.com"
        password = "<?Your:Strong@Pass/w0rd>"
        database = "database"
        url = f"postgresql://{quote(username, safe='')}:{quote(password, safe='')}@{host}:{port}/{database}"
        dialect, params = get_parameters(url)
        self.assertEqual(dialect, "postgresql")
        self.assertEqual(params.host, host)
        self.assertEqual(params.port, port)
        self.assertEqual(params.username, username)
        self.assertEqual(params.password, password)
        self.assertEqual(params.database, database)
        self.assertIsNone(params.ssl)
        self.assertIsNone(params.timeout)
        self.assertEqual(
            str(params), r"my%2Buser%40example.com@server.example.com:2310/database"
        )

    def test_query_parameters(self) -> None:
        url_prefix = "postgresql://server.example.com:2310/database"

        _, params = get_parameters(f"{url_prefix}?key=value")
        self.assertIsNone(params.ssl)
        self.assertEqual(str(params), r"server.example.com:2310/database")

        _, params = get_parameters(f"{url_prefix}?sslmode=verify-full")
        self.assertEqual(params.ssl, ConnectionSSLMode.verify_full)
        self.assertEqual(
            str(params), r"server.example.com:2310/database?sslmode=verify-full"
        )

        _, params = get_parameters(f"{url_prefix}?ssl=require&connect_timeout=2.5")
        self.assertEqual(params.ssl, ConnectionSSLMode.require)
        self.assertEqual(params.timeout, 2.5)
        self.assertEqual(
            str(params),
            r"server.example.com:2310/database?sslmode=require&connect_timeout=2.5",
        )

    def test_invalid_query_parameters(self) -> None:
        url_prefix = "postgresql://server.example.com:2310/database"
        for query in [
            "sslmode=sometimes",
            "sslmode=require&sslmode=disable",
            "sslmode=require&ssl=require",
            "connect_timeout=soon",
            "connect_timeout=0",
        ]:
            with self.subTest(query=query):
                with self.assertRaises(ValueError):
                    get_parameters(f"{url_prefix}?{query}")

    def test_defaults(self) -> None:
        dialect, params = get_parameters("postgres://localhost")
        self.assertEqual(dialect, "postgres")
        self.assertIsNone(params.port)
        self.assertIsNone(params.username)
        self.assertIsNone(params.database)
        self.assertEqual(str(params), "localhost")

        with self.assertRaises(ValueError):
            get_parameters("//localhost:5432/database")

    def test_password_hidden(self) -> None:
        params = ConnectionParameters(host="db", username="admin", password="s3cret")
        self.assertNotIn("s3cret", str(params))


class TestSSLMode(unittest.TestCase):
    def test_attempts(self) -> None:
        self.assertEqual(ConnectionSSLMode.disable.attempts(), [None])

        prefer = ConnectionSSLMode.prefer.attempts()
        self.assertEqual(len(prefer), 2)
        self.assertIsInstance(prefer[0], ssl.SSLContext)
        self.assertIsNone(prefer[1])

        allow = ConnectionSSLMode.allow.attempts()
        self.assertEqual(len(allow), 2)
        self.assertIsNone(allow[0])
        self.assertIsInstance(allow[1], ssl.SSLContext)

        for mode in [
            ConnectionSSLMode.require,
            ConnectionSSLMode.verify_ca,
            ConnectionSSLMode.verify_full,
        ]:
            with self.subTest(mode=mode):
                attempts = mode.attempts()
                self.assertEqual(len(attempts), 1)
                self.assertIsInstance(attempts[0], ssl.SSLContext)

    def test_verification(self) -> None:
        ctx = ConnectionSSLMode.require.create_context()
        assert ctx is not None
        self.assertEqual(ctx.verify_mode, ssl.CERT_NONE)
        self.assertFalse(ctx.check_hostname)

        ctx = ConnectionSSLMode.verify_ca.create_context()
        assert ctx is not None
        self.assertEqual(ctx.verify_mode, ssl.CERT_REQUIRED)
        self.assertFalse(ctx.check_hostname)

        ctx = ConnectionSSLMode.verify_full.create_context()
        assert ctx is not None
        self.assertEqual(ctx.verify_mode, ssl.CERT_REQUIRED)
        self.assertTrue(ctx.check_hostname)

        self.assertIsNone(ConnectionSSLMode.disable.create_context())


if __name__ == "__main__":
    unittest.main()
