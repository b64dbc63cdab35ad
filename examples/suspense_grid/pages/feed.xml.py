"""An endpoint route: the ``.xml`` in the file name sets the content type."""


def items():
    for color in ("red", "orange", "yellow"):
        yield f"<item><title>{color}</title></item>"


def handler(ctx):
    return ['<?xml version="1.0"?><rss><channel>', items(), "</channel></rss>"]
