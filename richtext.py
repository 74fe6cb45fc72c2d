"""
Facet detection for post text.

Bluesky addresses links, mentions and hashtags by UTF-8 byte offsets into the
post text. Detection here is a pure text scan; resolving mention handles to
DIDs is left to the client.
"""

import re
from dataclasses import dataclass
from typing import List

MENTION = "mention"
LINK = "link"
TAG = "tag"

MAX_TAG_LENGTH = 64

_MENTION_PATTERN = re.compile(r"(?:^|(?<=[\s(]))@([a-zA-Z0-9][a-zA-Z0-9.-]*\.[a-zA-Z][a-zA-Z0-9-]*)")
_URL_PATTERN = re.compile(
    r"(?:^|(?<=[\s(]))"
    r"(https?://\S+|(?P<domain>[a-zA-Z][a-zA-Z0-9]*(?:\.[a-zA-Z0-9-]+)+)\S*)"
)
_TAG_PATTERN = re.compile(r"(?:^|(?<=\s))[#＃]([^\s#＃]+)")

_TRAILING_PUNCTUATION = ".,;:!?\"'"

# Bare domains are linked only when they end in one of these.
_KNOWN_TLDS = frozenset(
    (
        "ai app art biz blog cloud club com dev edu gov info int io link live me "
        "mil museum name net news online org page pro shop site social space store "
        "tech today tv web wiki xyz zone "
        "ac ad ae af ag al am ao aq ar as at au aw ax az ba bb bd be bf bg bh bi bj "
        "bm bn bo br bs bt bw by bz ca cc cd cf cg ch ci ck cl cm cn co cr cu cv cw "
        "cx cy cz de dj dk dm do dz ec ee eg er es et eu fi fj fk fm fo fr ga gd ge "
        "gf gg gh gi gl gm gn gp gq gr gs gt gu gw gy hk hm hn hr ht hu id ie il im "
        "in iq ir is it je jm jo jp ke kg kh ki km kn kp kr kw ky kz la lb lc li lk "
        "lr ls lt lu lv ly ma mc md mg mh mk ml mm mn mo mp mq mr ms mt mu mv mw mx "
        "my mz na nc ne nf ng ni nl no np nr nu nz om pa pe pf pg ph pk pl pm pn pr "
        "ps pt pw py qa re ro rs ru rw sa sb sc sd se sg sh si sk sl sm sn so sr ss "
        "st su sv sx sy sz tc td tf tg th tj tk tl tm tn to tr tt tw tz ua ug uk us "
        "uy uz va vc ve vg vi vn vu wf ws ye yt za zm zw"
    ).split()
)


@dataclass(frozen=True)
class FacetSpan:
    kind: str
    byte_start: int
    byte_end: int
    value: str


def _byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))


def _span(text: str, kind: str, start: int, end: int, value: str) -> FacetSpan:
    return FacetSpan(kind, _byte_offset(text, start), _byte_offset(text, end), value)


def _trim_url(url: str) -> str:
    url = url.rstrip(_TRAILING_PUNCTUATION)
    # keep a closing paren only when the url opened one
    if url.endswith(")") and url.count("(") < url.count(")"):
        url = url[:-1]
    return url


def _find_mentions(text: str) -> List[FacetSpan]:
    spans = []
    for match in _MENTION_PATTERN.finditer(text):
        handle = match.group(1).rstrip(".-")
        start = match.start(1) - 1  # include the "@"
        end = match.start(1) + len(handle)
        spans.append(_span(text, MENTION, start, end, handle.lower()))
    return spans


def _has_known_tld(domain: str) -> bool:
    return domain.rsplit(".", 1)[-1].lower() in _KNOWN_TLDS


def _find_links(text: str) -> List[FacetSpan]:
    spans = []
    for match in _URL_PATTERN.finditer(text):
        url = _trim_url(match.group(1))
        domain = match.group("domain")
        if domain is None:
            if url.count("/") < 2 or url.endswith("://"):
                continue
            target = url
        else:
            if not _has_known_tld(domain.rstrip(".-")):
                continue
            target = "https://" + url
        start = match.start(1)
        spans.append(_span(text, LINK, start, start + len(url), target))
    return spans


def _find_tags(text: str) -> List[FacetSpan]:
    spans = []
    for match in _TAG_PATTERN.finditer(text):
        tag = match.group(1).rstrip(_TRAILING_PUNCTUATION + ")")
        if not tag or tag.isdigit() or len(tag) > MAX_TAG_LENGTH:
            continue
        start = match.start(1) - 1  # include the "#"
        spans.append(_span(text, TAG, start, match.start(1) + len(tag), tag))
    return spans


def detect_facets(text: str) -> List[FacetSpan]:
    """Return link, mention and hashtag spans in text order, without overlaps."""
    candidates = _find_links(text) + _find_mentions(text) + _find_tags(text)
    candidates.sort(key=lambda span: (span.byte_start, -span.byte_end))

    spans: List[FacetSpan] = []
    last_end = -1
    for span in candidates:
        # links win over anything that appears inside them (e.g. "#frag")
        if span.byte_start < last_end:
            continue
        spans.append(span)
        last_end = span.byte_end
    return spans
