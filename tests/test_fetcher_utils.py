"""Tests for newsflow.fetchers.utils -- entity decoding and fallback images."""
from __future__ import annotations

from newsflow.fetchers.utils import FALLBACK_IMAGES, decode_html_entities, fallback_image


class TestDecodeHtmlEntities:
    def test_named_entities(self):
        text = "&quot;Tom &amp; Jerry&quot; &lt;b&gt; &apos;x&apos;"
        assert decode_html_entities(text) == "\"Tom & Jerry\" <b> 'x'"

    def test_dashes_and_ellipsis(self):
        assert decode_html_entities("a &ndash; b &mdash; c&hellip;") == "a – b — c…"

    def test_polish_diacritics(self):
        text = "Zaj&eogon;cie &lstrok;&oacute;d&zacute; &Zdot;ubr &sacute;wi&aogon;t"
        assert decode_html_entities(text) == "Zajęcie łódź Żubr świąt"

    def test_decimal_references(self):
        assert decode_html_entities("&#8211; &#34;ok&#34;") == "– \"ok\""

    def test_hexadecimal_references(self):
        assert decode_html_entities("&#x2013; &#X141;&#x3b1;") == "– Łα"

    def test_unknown_entity_is_left_untouched(self):
        assert decode_html_entities("&foo; and &bar") == "&foo; and &bar"

    def test_out_of_range_code_point_is_left_untouched(self):
        assert decode_html_entities("&#x110000;") == "&#x110000;"

    def test_double_encoded_decodes_one_level(self):
        assert decode_html_entities("&amp;lt;") == "&lt;"

    def test_empty_input(self):
        assert decode_html_entities("") == ""

    def test_plain_text_unchanged(self):
        assert decode_html_entities("Nothing to decode here") == "Nothing to decode here"


class TestFallbackImage:
    def test_known_category(self):
        assert fallback_image("Sport") == FALLBACK_IMAGES["Sport"]

    def test_unknown_category_uses_general_news_image(self):
        assert fallback_image("Kultura") == FALLBACK_IMAGES["Wiadomości"]
