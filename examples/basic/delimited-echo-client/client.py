# Copyright (c) 2023, Francis Clairicia-Rose-Claire-Josephine
#
#
from __future__ import annotations

import logging
import sys

from delimchannel import open_channel
from delimchannel.exceptions import ChannelOpenError, TruncatedMessageError
from delimchannel.lowlevel.constants import DEFAULT_STREAM_BUFSIZE

DELIMITER = "<<END>>"


def main() -> None:
    host = "localhost"
    port = 9000

    logging.basicConfig(level=logging.DEBUG, format="[ %(levelname)s ] [ %(name)s ] %(message)s")
    try:
        channel = open_channel(host, port, encoding="utf-8", on_message=lambda text: print(f"Received {text!r}"))
    except ChannelOpenError as exc:
        sys.exit(str(exc))

    with channel:
        for line in sys.stdin:
            channel.write_message(line.rstrip("\n") + DELIMITER)
            try:
                channel.read_message(DEFAULT_STREAM_BUFSIZE, DELIMITER)
            except TruncatedMessageError as exc:
                print(f"Server closed the connection ({len(exc.partial_data)} byte(s) left unanswered)")
                break


if __name__ == "__main__":
    main()
