"""
tuna rate command - set the rating of a response file.
"""

from pathlib import Path

from tuna.response import Rating, save_rating


def setup_parser(subparsers):
    rate_parser = subparsers.add_parser(
        'rate',
        help='Rate a response file'
    )
    rate_parser.add_argument(
        'response_file',
        help='Path to a *_response.md file'
    )
    rate_parser.add_argument(
        'rating',
        choices=[r.value for r in Rating],
        help='good, bad, or none to clear'
    )
    rate_parser.set_defaults(func=cmd_rate)


def cmd_rate(args) -> int:
    path = Path(args.response_file)
    if not path.is_file():
        print(f"❌ File not found: {path}")
        return 2

    rating = save_rating(path, args.rating)
    if rating == Rating.NONE:
        print(f"✅ Cleared rating: {path}")
    else:
        print(f"✅ Rated {rating.value}: {path}")
    return 0
