"""
Parsing of RFC 8288 Link headers used for registry tag-list pagination.

Example header:
    Link: </v2/library/nginx/tags/list?last=1.25&n=100>; rel="next"
"""

import re
from typing import Optional
from urllib.parse import urljoin

_LINK_VALUE = re.compile(r'<([^>]*)>((?:\s*;\s*[^,;]+)*)')
_LINK_PARAM = re.compile(r';\s*([\w*-]+)\s*=\s*(?:"([^"]*)"|([^\s;,]+))')


def parse_next_link(header: Optional[str], base_url: str) -> Optional[str]:
    """
    Return the absolute target of the rel="next" link, if any.

    Relative targets are resolved against the URL of the request that
    returned the header. A link without a rel parameter is treated as
    "next", which is how some registries send it.
    """
    if not header:
        return None

    fallback: Optional[str] = None
    for match in _LINK_VALUE.finditer(header):
        target, params = match.group(1).strip(), match.group(2) or ""
        rels = None
        for param in _LINK_PARAM.finditer(params):
            if param.group(1).lower() == "rel":
                rels = (param.group(2) if param.group(2) is not None else param.group(3)).lower().split()
        if rels is None:
            fallback = fallback or target
        elif "next" in rels:
            return urljoin(base_url, target)

    return urljoin(base_url, fallback) if fallback else None
