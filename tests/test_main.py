import unittest
import io
import json
import os
import shutil
import tempfile
from contextlib import redirect_stdout
from unittest.mock import patch

# Import command line entry point
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import main
from cosm_orc import Orchestrator, SigningKey
from cosm_orc.profilers import GroupKey, GroupStats, OperationKind, Report
from fake_chain import FakeChainClient


class TestMain(unittest.TestCase):
    """Test cases for the command line interface"""

    def setUp(self):
        """Set up test fixtures"""
        self.tmpdir = tempfile.mkdtemp()
        transfer = GroupKey("cw20", "transfer", OperationKind.EXECUTE)
        init = GroupKey("cw20", "init", OperationKind.INSTANTIATE)

        self.before = os.path.join(self.tmpdir, "before.json")
        self.after = os.path.join(self.tmpdir, "after.json")
        Report("main", {transfer: GroupStats.from_values([100]),
                        init: GroupStats.from_values([500])}).save(self.before)
        Report("branch", {transfer: GroupStats.from_values([150])}).save(self.after)

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def run_main(self, argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main.main(argv)
        return code, out.getvalue()

    def test_report_show(self):
        """Test printing a report"""
        code, output = self.run_main(["report", "show", self.before])
        self.assertEqual(code, 0)
        self.assertIn("transfer", output)
        self.assertIn("init", output)

    def test_report_diff(self):
        """Test comparing two reports"""
        code, output = self.run_main(["report", "diff", self.before, self.after])
        self.assertEqual(code, 0)
        self.assertIn("+50.0", output)
        self.assertIn("+50.00", output)
        self.assertIn("[REMOVED]", output)
        self.assertIn("absent", output)

    def test_report_missing_file(self):
        """Test a report path that does not exist"""
        code, _ = self.run_main(["report", "show", os.path.join(self.tmpdir, "nope.json")])
        self.assertEqual(code, 1)

    def test_bad_config(self):
        """Test a config file without required keys"""
        path = os.path.join(self.tmpdir, "config.yaml")
        with open(path, 'w') as f:
            f.write("key_name: validator\n")
        code, output = self.run_main(["store", "--config", path, "--wasm-dir", self.tmpdir])
        self.assertEqual(code, 2)
        self.assertIn("Configuration error", output)

    def test_config_not_a_mapping(self):
        """Test a config file whose top level is a list"""
        path = os.path.join(self.tmpdir, "config.yaml")
        with open(path, 'w') as f:
            f.write("- a\n- b\n")
        code, output = self.run_main(["store", "--config", path, "--wasm-dir", self.tmpdir])
        self.assertEqual(code, 2)
        self.assertIn("Configuration error", output)

    def test_store(self):
        """Test storing a wasm directory and writing the outputs"""
        wasm_dir = os.path.join(self.tmpdir, "artifacts")
        os.mkdir(wasm_dir)
        with open(os.path.join(wasm_dir, "cw20.wasm"), 'wb') as f:
            f.write(b"\x00asm")

        config = os.path.join(self.tmpdir, "config.yaml")
        with open(config, 'w') as f:
            f.write("chain_cfg:\n  denom: ustake\n  chain_id: testing\n"
                    "  rpc_endpoint: localhost\nkey_name: validator\n")

        report = os.path.join(self.tmpdir, "gas.json")
        registry = os.path.join(self.tmpdir, "registry.json")
        orchestrator = Orchestrator(FakeChainClient())

        with patch('main.create_orchestrator', return_value=(orchestrator, SigningKey("validator"))):
            code, output = self.run_main(["store", "--config", config, "--wasm-dir", wasm_dir,
                                          "--report", report, "--registry", registry])

        self.assertEqual(code, 0)
        self.assertIn("cw20: code id 1", output)
        self.assertEqual(len(Report.load(report).groups), 1)
        with open(registry) as f:
            self.assertEqual(json.load(f)["cw20"]["code_id"], 1)


if __name__ == '__main__':
    unittest.main()
