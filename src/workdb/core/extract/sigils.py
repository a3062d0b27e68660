"""Media attribute sigils trailing an embed's alt text"""

from workdb.core.models import MediaAttributes


LOOP = "~"
AUTOPLAY = ">"
HIDE_CONTROLS = "="
SIGILS = frozenset((LOOP, AUTOPLAY, HIDE_CONTROLS))


def decode_attributes(alt: str) -> tuple[str, MediaAttributes]:
    """Split trailing sigils off alt text and decode them into MediaAttributes.

    "cat ~>" -> ("cat", loop + autoplay + muted). A single space between the
    text and the sigils is consumed with them. Alt text that does not end with
    a sigil is returned unchanged with the default attributes.
    """
    attributes = MediaAttributes()
    end = len(alt)
    while end > 0 and alt[end - 1] in SIGILS:
        end -= 1
    if end == len(alt):
        return alt, attributes

    for sigil in alt[end:]:
        if sigil == AUTOPLAY:
            attributes.autoplay = True
            attributes.muted = True
        elif sigil == LOOP:
            attributes.loop = True
        elif sigil == HIDE_CONTROLS:
            attributes.controls = False
            attributes.playsinline = True

    if end > 0 and alt[end - 1] == " ":
        end -= 1
    return alt[:end], attributes
