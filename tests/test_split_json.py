import contextlib
import io
import logging
import os
import sys
import tempfile
import unittest

sys.path.append(os.path.join(os.path.dirname(__file__), '../src'))

from split_json import main, parse_count
from split_errors import InvalidCountError


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.source = os.path.join(self.tmp.name, "Mailboxes.json")
        with open(self.source, 'w', encoding='utf-8') as f:
            f.write('[{"name":"a","alias":null},{"name":"b"},{"name":"c"}]')

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        self.tmp.cleanup()

    def call(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_no_arguments_prints_usage(self):
        code, out = self.call()
        self.assertEqual(code, 0)
        self.assertIn("usage: split-json", out)

    def test_question_mark_prints_usage(self):
        code, out = self.call("/?")
        self.assertEqual(code, 0)
        self.assertIn("usage: split-json", out)

    def test_help_flags_return_instead_of_exiting(self):
        for flag in ("-h", "--help"):
            with self.subTest(flag=flag):
                code, out = self.call(flag)
                self.assertEqual(code, 0)
                self.assertIn("usage: split-json", out)

    def test_wrong_argument_count(self):
        code, out = self.call(self.source)
        self.assertEqual(code, 2)
        self.assertIn("Invalid arguments", out)

    def test_missing_source(self):
        with self.assertLogs("split_json", level="ERROR") as logs:
            code, _ = self.call(os.path.join(self.tmp.name, "nope.json"), "2")
        self.assertEqual(code, 3)
        self.assertIn("Source File does not exist.", logs.output[0])

    def test_invalid_count(self):
        for count in ("zero", "0", "-4"):
            with self.subTest(count=count):
                with self.assertLogs("split_json", level="ERROR") as logs:
                    code, _ = self.call(self.source, count)
                self.assertEqual(code, 4)
                self.assertIn("Invalid number of files.", logs.output[0])

    def test_split_next_to_source(self):
        with self.assertLogs("split_json", level="INFO") as logs:
            code, _ = self.call(self.source, "2")

        self.assertEqual(code, 0)
        with open(os.path.join(self.tmp.name, "mailboxes_split_1.json"), encoding='utf-8') as f:
            self.assertEqual(f.read(), '[{"name":"a"},{"name":"c"}]')
        with open(os.path.join(self.tmp.name, "mailboxes_split_2.json"), encoding='utf-8') as f:
            self.assertEqual(f.read(), '[{"name":"b"}]')

        messages = "\n".join(logs.output)
        self.assertIn("Wrote object 2 to file 1", messages)
        self.assertIn("JSON file split successfully.", messages)

    def test_quiet_skips_progress_lines(self):
        with self.assertLogs("split_json", level="INFO") as logs:
            code, _ = self.call(self.source, "3", "--quiet")

        self.assertEqual(code, 0)
        self.assertNotIn("Wrote object", "\n".join(logs.output))

    def test_output_dir(self):
        out_dir = os.path.join(self.tmp.name, "parts")
        code, _ = self.call(self.source, "2", "--output-dir", out_dir, "--quiet")

        self.assertEqual(code, 0)
        self.assertEqual(sorted(os.listdir(out_dir)), ["mailboxes_split_1.json", "mailboxes_split_2.json"])

    def test_log_file(self):
        log_path = os.path.join(self.tmp.name, "split.log")
        code, _ = self.call(self.source, "1", "--log-file", log_path, "--quiet")

        self.assertEqual(code, 0)
        with open(log_path, encoding='utf-8') as f:
            self.assertIn("JSON file split successfully.", f.read())

    def test_malformed_input(self):
        with open(self.source, 'w', encoding='utf-8') as f:
            f.write('[{"name":"a"},{"name":"b"}')

        with self.assertLogs("split_json", level="INFO") as logs:
            code, _ = self.call(self.source, "2", "--quiet")

        self.assertEqual(code, 6)
        messages = "\n".join(logs.output)
        self.assertIn("An error occurred:", messages)
        self.assertNotIn("JSON file split successfully.", messages)


class TestParseCount(unittest.TestCase):
    def test_accepts_positive_integers(self):
        self.assertEqual(parse_count("7"), 7)

    def test_rejects_everything_else(self):
        for text in ("", "1.5", "abc", "0", "-1"):
            with self.subTest(text=text):
                with self.assertRaises(InvalidCountError):
                    parse_count(text)


if __name__ == "__main__":
    unittest.main()
