"""
Command line entry point for generating a tutorial without the web server.
"""

import argparse
import sys
from typing import Optional, TextIO

from dotenv import load_dotenv

from vidtutor.core.dispatcher import TutorialDispatcher, build_default_dispatcher
from vidtutor.core.sse import parse_event
from vidtutor.models.schemas import TutorialRequest
from vidtutor.utils.error_handling import GatewayError
from vidtutor.utils.logger import logging


def generate_tutorial(
    request: TutorialRequest,
    dispatcher: Optional[TutorialDispatcher] = None,
    out: TextIO = sys.stdout,
) -> str:
    """
    Run the dispatcher in-process and write the tutorial as it streams.

    Args:
        request: Tutorial request
        dispatcher: Dispatcher to use (default engines when None)
        out: Where streamed text is written

    Returns:
        The complete tutorial text
    """
    dispatcher = dispatcher or build_default_dispatcher()
    parts = []
    for record in dispatcher.dispatch(request):
        event = parse_event(record.strip())
        if event is True:
            break
        if event:
            parts.append(event)
            out.write(event)
            out.flush()
    out.write("\n")
    return "".join(parts)


def main():
    """Main function to run the application from command line."""
    parser = argparse.ArgumentParser(description="Video Tutor Gateway")
    parser.add_argument("--video-url", help="Bilibili or YouTube video URL")
    parser.add_argument("--subtitle-url", help="URL of a subtitle JSON document")
    parser.add_argument("--description", help="Video description used when there are no subtitles")
    parser.add_argument("--title", help="Video title")

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()

    request = TutorialRequest(
        video_url=args.video_url,
        subtitle_url=args.subtitle_url,
        description=args.description,
        title=args.title,
    )

    try:
        generate_tutorial(request)
    except GatewayError as e:
        logging.error(f"Tutorial generation failed: {e.message}")
        print(e.message, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
