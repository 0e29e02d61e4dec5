import argparse
import sys
from dataclasses import replace
from pathlib import Path

from quiz_engine.errors import QuizEngineError
from quiz_engine.logging_setup import setup_console_logging
from quiz_engine.services.codec_service import seal_quiz
from quiz_engine.services.quiz_service import load_quiz
from quiz_engine.services.scoring_service import ScoringOptions, finalize_result, score_quiz
from quiz_engine.utils import json_dump, quiz_payload_path, read_json_file, write_json_file


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seal, score and install quiz files")
    commands = parser.add_subparsers(dest="command", required=True)

    seal = commands.add_parser("seal", help="Write the client-safe form of a quiz")
    seal.add_argument("file", type=Path, help="Path to quiz.json")
    seal.add_argument("--output", type=Path, help="Output file (default: stdout)")

    score = commands.add_parser("score", help="Score answers against a quiz")
    score.add_argument("file", type=Path, help="Path to quiz.json")
    score.add_argument("answers", type=Path, help="JSON object of question id -> answer")
    score.add_argument(
        "--mode",
        choices=["practice", "exam"],
        default="practice",
        help="Exam mode enables streak and time bonuses",
    )
    score.add_argument("--streak", type=int, default=0, help="Streak to apply in exam mode")
    score.add_argument(
        "--all-or-nothing",
        action="store_true",
        help="Disable partial credit for multiple-choice questions",
    )

    install = commands.add_parser("install", help="Validate a quiz and copy it into the data dir")
    install.add_argument("file", type=Path, help="Path to quiz.json")
    install.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data/quizzes"),
        help="Quiz data directory",
    )
    return parser.parse_args(argv)


def _load(path: Path):
    payload = read_json_file(path, None)
    if payload is None:
        raise QuizEngineError(f"File not found: {path}")
    return load_quiz(payload)


def _seal(args: argparse.Namespace) -> None:
    sealed = seal_quiz(_load(args.file)).model_dump(mode="json", by_alias=True)
    if args.output:
        write_json_file(args.output, sealed)
        print(f"Saved sealed quiz to {args.output}")
    else:
        print(json_dump(sealed))


def _score(args: argparse.Namespace) -> None:
    quiz = _load(args.file)
    payload = read_json_file(args.answers, None)
    if not isinstance(payload, dict):
        raise QuizEngineError(f"Answers file must contain a JSON object: {args.answers}")
    # Accept a full submission body as well as a bare answers map
    answers = payload.get("answers", payload)
    duration_ms = payload.get("durationMs")

    options = ScoringOptions.for_mode(args.mode)
    if args.all_or_nothing:
        options = replace(options, partial_credit=False)
    result = finalize_result(
        score_quiz(quiz.questions, answers, options),
        options,
        streak=args.streak,
        elapsed_seconds=duration_ms / 1000 if isinstance(duration_ms, (int, float)) else None,
        time_limit_seconds=quiz.time_limit_sec,
    )
    print(json_dump(result.model_dump(mode="json")))


def _install(args: argparse.Namespace) -> None:
    quiz = _load(args.file)
    target = quiz_payload_path(quiz.id, args.data_dir)
    write_json_file(target, quiz.model_dump(mode="json", by_alias=True))
    print(f"Saved quiz {quiz.id} to {target}")


def main(argv: list[str] | None = None) -> int:
    setup_console_logging()
    args = parse_args(argv)
    handlers = {"seal": _seal, "score": _score, "install": _install}
    try:
        handlers[args.command](args)
    except QuizEngineError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
