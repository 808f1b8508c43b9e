import io
import tempfile
import unittest
from pathlib import Path

from aiohttp.test_utils import TestServer

from igloo_client import cli
from tests.igloo_server import create_app


class CliTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.server = TestServer(create_app(wallet=None))
        await self.server.start_server()
        self.tmp = tempfile.TemporaryDirectory()
        self.config = Path(self.tmp.name) / "igloo.json"

    async def asyncTearDown(self):
        await self.server.close()
        self.tmp.cleanup()

    async def _run(self, *argv: str) -> tuple[int, str]:
        args = cli.build_parser().parse_args(
            ["--url", str(self.server.make_url("/ws")), "--config", str(self.config), "--timeout", "2", *argv]
        )
        output = io.StringIO()
        code = await cli.run(args, output)
        return code, output.getvalue()

    async def test_list_prints_each_igloo(self):
        code, out = await self._run("list")

        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "igloo1\tavailable\tpublic\t-")
        self.assertEqual(lines[1], "igloo2\trented\tfee\tAnn")

    async def test_rentals_for_wallet(self):
        code, out = await self._run("--wallet", "w-bob", "rentals")

        self.assertEqual(code, 0)
        self.assertEqual(out, "")

    async def test_enter_granted(self):
        code, out = await self._run("enter", "igloo1")

        self.assertEqual(code, 0)
        self.assertEqual(out, "granted igloo1\n")

    async def test_enter_denied_reports_requirements(self):
        code, out = await self._run("enter", "igloo2")

        self.assertEqual(code, 1)
        self.assertEqual(out, "denied igloo2 reason=ENTRY_FEE_REQUIRED fee=500 token_required=0\n")

    async def test_config_file_is_optional_but_validated(self):
        self.config.write_text('{"check_interval_s": 15, "unknown": true}', encoding="utf-8")

        code, _ = await self._run("list")

        self.assertEqual(code, 0)


class ParserTests(unittest.TestCase):
    def test_enter_requires_igloo_id(self):
        with self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["--url", "ws://x", "enter"])

    def test_defaults(self):
        args = cli.build_parser().parse_args(["--url", "ws://x", "list"])

        self.assertIsNone(args.wallet)
        self.assertEqual(args.timeout, 10.0)
        self.assertEqual(args.command, "list")


if __name__ == "__main__":
    unittest.main()
