"""
Unit tests for Link header parsing (tag list pagination).
"""

import pytest

from cup.utils.link import parse_next_link

BASE = "https://registry.example.com/v2/library/nginx/tags/list"


class TestParseNextLink:

    def test_relative_link_resolved_against_request_url(self):
        header = '</v2/library/nginx/tags/list?last=1.25&n=100>; rel="next"'

        assert parse_next_link(header, BASE) == (
            "https://registry.example.com/v2/library/nginx/tags/list?last=1.25&n=100"
        )

    def test_absolute_link_kept(self):
        header = '<https://other.example.com/v2/x/tags/list?last=a>; rel="next"'

        assert parse_next_link(header, BASE) == "https://other.example.com/v2/x/tags/list?last=a"

    def test_unquoted_rel(self):
        assert parse_next_link("<?last=b>; rel=next", BASE) == f"{BASE}?last=b"

    def test_picks_next_among_several_links(self):
        header = '</v2/a?page=1>; rel="prev", </v2/a?page=3>; rel="next"'

        assert parse_next_link(header, BASE) == "https://registry.example.com/v2/a?page=3"

    def test_link_without_rel_is_next(self):
        assert parse_next_link("</v2/a?last=z>", BASE) == "https://registry.example.com/v2/a?last=z"

    @pytest.mark.parametrize("header", [None, "", '</v2/a?page=1>; rel="prev"', "garbage"])
    def test_no_next_link(self, header):
        assert parse_next_link(header, BASE) is None
