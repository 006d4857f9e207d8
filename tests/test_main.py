import contextlib
import io
import os
import unittest
from unittest import mock

from henka import main as cli


def run_cli(*argv: str):
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        code = cli.main(list(argv))
    return code, out.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.dict(os.environ, {"SEED": "5"})
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_version(self) -> None:
        code, out = run_cli("--version")
        self.assertEqual(code, 0)
        self.assertIn("henka 0.1.0", out)

    def test_instruments(self) -> None:
        code, out = run_cli("instruments")
        self.assertEqual(code, 0)
        self.assertTrue(out.splitlines()[0].startswith("sampled_grand"))
        self.assertIn("felt_piano", out)

    def test_generate_from_roman(self) -> None:
        code, out = run_cli("generate", "--key", "G", "--roman", "I", "IV", "V", "I")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertIn("Key: G", lines[0])
        self.assertEqual(len(lines), 5)
        self.assertIn("IV", lines[2])
        self.assertTrue(lines[2].split()[1].startswith("C"))

    def test_generate_is_seeded(self) -> None:
        _, first = run_cli("generate", "--difficulty", "advanced")
        _, second = run_cli("generate", "--difficulty", "advanced")
        self.assertEqual(first, second)

    def test_bad_numeral_reports_error(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code, _ = run_cli("generate", "--key", "C", "--roman", "I", "XYZ")
        self.assertEqual(code, 1)
        self.assertIn("ERROR:", err.getvalue())

    def test_format_progression(self) -> None:
        from henka.theory.progression import generate_progression_from_roman

        text = cli.format_progression(generate_progression_from_roman(["I"], "C"))
        self.assertIn("C4 E4 G4", text)

    def test_drill_questions_follow_voice_leading_setting(self) -> None:
        from henka.config.config import validate_config

        session = cli.Session(validate_config({"generation": {"voice_leading": False}}))
        with mock.patch.object(cli, "generate_question", wraps=cli.generate_question) as gen:
            question = session.new_question("transpose", "beginner")
        options = gen.call_args[0][4]
        self.assertFalse(options.voice_leading)
        self.assertEqual(len(question.correct_answer), len(question.progression.chords))


if __name__ == "__main__":
    unittest.main()
