from __future__ import annotations

"""CLI entry point for henka."""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .audio.engine import AudioEngine, make_engine_from_config
from .audio.instruments import instrument_options
from .config.config import custom_difficulty, load_config, validate_config
from .quiz import GAME_MODES, Question, generate_question, hint, split_answer, submit_answer
from .theory.chord import ChordProgression
from .theory.difficulty import DifficultyLevel, difficulty_names
from .theory.errors import TheoryError
from .theory.keys import midi_to_note_name
from .theory.progression import ProgressionGenerator, ProgressionOptions
from .util.randomness import choose_random_key, make_rng


_LOGGER = logging.getLogger("henka.main")


class Session:
    """Holds what the sub-commands share: config, the custom level and the engine."""

    def __init__(self, cfg: Dict[str, Any]) -> None:
        self.cfg = cfg
        self.custom: DifficultyLevel = custom_difficulty(cfg)
        seed = cfg["generation"].get("seed")
        self.generator = ProgressionGenerator(make_rng(seed), self.custom)
        self._engine: Optional[AudioEngine] = None

    @property
    def engine(self) -> AudioEngine:
        if self._engine is None:
            self._engine = make_engine_from_config(self.cfg)
        return self._engine

    def options(self, voice_leading: Optional[bool]) -> ProgressionOptions:
        if voice_leading is None:
            voice_leading = self.cfg["generation"].get("voice_leading")
        return ProgressionOptions(voice_leading=voice_leading)

    def new_question(self, mode: str, difficulty: str) -> Question:
        return generate_question(
            self.generator, mode, difficulty, self.cfg["generation"].get("key"), self.options(None)
        )

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


def _add_generation_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--difficulty", choices=difficulty_names(), default=None, help="Difficulty level")
    p.add_argument("--key", type=str, default=None, help="Tonic, e.g. C or Eb (random when omitted)")
    p.add_argument("--roman", nargs="+", default=None, help="Roman-numeral tokens instead of a random template")
    vl = p.add_mutually_exclusive_group()
    vl.add_argument("--voice-leading", dest="voice_leading", action="store_true", default=None)
    vl.add_argument("--no-voice-leading", dest="voice_leading", action="store_false")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="henka", description="Chord-progression ear training")
    p.add_argument("--config", type=str, default=None, help="Path to YAML config")
    p.add_argument("--log-level", type=str, default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    sub = p.add_subparsers(dest="command")

    gen = sub.add_parser("generate", help="Print a progression")
    _add_generation_args(gen)

    play = sub.add_parser("play", help="Generate and play a progression")
    _add_generation_args(play)
    play.add_argument("--instrument", type=str, default=None, help="Instrument id (see 'instruments')")

    drill = sub.add_parser("drill", help="Interactive identification drill")
    drill.add_argument("--difficulty", choices=difficulty_names(), default=None)
    drill.add_argument("--mode", choices=GAME_MODES, default=None)
    drill.add_argument("--questions", type=int, default=None)
    drill.add_argument("--instrument", type=str, default=None)

    sub.add_parser("instruments", help="List instruments")
    return p.parse_args(argv)


def _build_progression(session: Session, args: argparse.Namespace) -> ChordProgression:
    generation = session.cfg["generation"]
    difficulty = args.difficulty or generation["difficulty"]
    key = args.key or generation.get("key")
    options = session.options(args.voice_leading)
    _LOGGER.debug("Generating: difficulty=%s key=%s options=%s", difficulty, key, options)
    if args.roman:
        if key is None:
            key = choose_random_key(session.generator.rng)
        return session.generator.generate_from_roman(args.roman, key, difficulty, options)
    return session.generator.generate_random(difficulty, key, options)


def format_progression(progression: ChordProgression) -> str:
    lines = [f"Key: {progression.key}  Tempo: {progression.tempo}"]
    for chord in progression.chords:
        notes = " ".join(midi_to_note_name(n) for n in chord.notes)
        lines.append(f"  {chord.roman_numeral or '-':<10} {chord.name:<12} {notes}")
    return "\n".join(lines)


def _cmd_generate(session: Session, args: argparse.Namespace) -> int:
    print(format_progression(_build_progression(session, args)))
    return 0


async def _cmd_play(session: Session, args: argparse.Namespace) -> int:
    progression = _build_progression(session, args)
    print(format_progression(progression))
    if args.instrument:
        session.engine.set_instrument(args.instrument)
    await session.engine.play_progression(progression)
    return 0


async def _ask(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def _cmd_drill(session: Session, args: argparse.Namespace) -> int:
    drill_cfg = session.cfg["drill"]
    difficulty = args.difficulty or session.cfg["generation"]["difficulty"]
    mode = args.mode or drill_cfg["mode"]
    total = args.questions or drill_cfg["questions"]
    replay_limit = int(drill_cfg.get("replay_limit", 3))
    engine = session.engine
    if args.instrument:
        engine.set_instrument(args.instrument)

    print(f"Drill: {total} questions, difficulty {difficulty}, {mode} mode. 'r' replays, 'h' hints, 'q' quits.")
    score = 0
    asked = 0
    for number in range(1, total + 1):
        question = session.new_question(mode, difficulty)
        replays = 0
        await engine.play_progression(question.progression)
        while True:
            raw = (await _ask(f"[{number}/{total}] Your answer: ")).strip()
            if raw.lower() == "q":
                print(f"Score: {score}/{asked}")
                return 0
            if raw.lower() == "h":
                print(hint(question.progression, mode))
                continue
            if raw.lower() == "r":
                if replays >= replay_limit:
                    print("No replays left.")
                    continue
                replays += 1
                await engine.play_progression(question.progression)
                continue
            break
        asked += 1
        if submit_answer(question, split_answer(raw)):
            score += 1
            print("Correct!")
        else:
            print(f"Incorrect. Answer: {' - '.join(question.correct_answer)}")
    print(f"Score: {score}/{asked}")
    return 0


def _cmd_instruments() -> int:
    for inst in instrument_options():
        print(f"{inst.id:<16} {inst.playback:<7} {inst.label}: {inst.description}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if args.version:
        print(f"henka {__version__}")
        return 0

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "instruments":
        return _cmd_instruments()

    cfg = validate_config(load_config(args.config))
    session = Session(cfg)
    try:
        if args.command == "generate":
            return _cmd_generate(session, args)
        if args.command == "play":
            return asyncio.run(_cmd_play(session, args))
        if args.command == "drill":
            return asyncio.run(_cmd_drill(session, args))
        print("Nothing to do; see --help.")
        return 2
    except (TheoryError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print()
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
