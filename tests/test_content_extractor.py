"""
tests/test_content_extractor.py

Pytest unit tests for ContentExtractor.

Coverage
--------
- Visible text excludes script/style/noscript and collapses whitespace
- Title, description, Open Graph, Twitter, canonical and language metadata
- JSON-LD blocks parsed; malformed blocks skipped
- Broker keyword signals with surrounding context
- Contact details (emails, phones, social links) de-duplicated
- Rating fractions and review counts
- Structured payload serialization shape
"""

from __future__ import annotations

import pytest

from app.crawling.parsing import ContentExtractor

PAGE = """
<!DOCTYPE html>
<html lang="en-GB">
<head>
  <title>
    Acme Markets   Review
  </title>
  <meta name="description" content=" Low cost forex broker ">
  <meta name="keywords" content="forex, cfd">
  <meta property="og:title" content="Acme Markets">
  <meta name="twitter:card" content="summary">
  <link rel="canonical" href=" https://acme.example.com/review ">
  <script type="application/ld+json">{"@type": "Organization", "name": "Acme"}</script>
  <script type="application/ld+json">{not json</script>
  <style>.x { color: red; }</style>
</head>
<body>
  <h1>Acme   Markets</h1>
  <!-- tracking comment -->
  <div class="regulation-box">Authorized and regulated by the FCA</div>
  <div id="spread-table">EUR/USD 0.6</div>
  <div class="rating-widget">Rated 4.5 / 5 overall</div>
  <p>Read 1,234 reviews. Contact support@acme.example.com or support@acme.example.com.</p>
  <p>Call +442071234567 today.</p>
  <a href="https://facebook.com/acme">Facebook</a>
  <a href="https://www.linkedin.com/company/acme">LinkedIn</a>
  <noscript>Enable JavaScript</noscript>
  <script>window.secret = 1;</script>
</body>
</html>
"""


@pytest.fixture()
def soup():
    return ContentExtractor.parse_document(PAGE)


# ---------------------------------------------------------------------------
# Text and metadata
# ---------------------------------------------------------------------------


class TestTextAndMetadata:
    def test_text_excludes_non_content(self, soup) -> None:
        text = ContentExtractor.extract_text(soup)

        assert "Acme Markets" in text
        assert "window.secret" not in text
        assert "Enable JavaScript" not in text
        assert "tracking comment" not in text
        assert "color: red" not in text
        assert "  " not in text

    def test_text_accepts_raw_html(self) -> None:
        assert ContentExtractor.extract_text("<p> a \n\n b </p>") == "a b"

    def test_empty_document(self) -> None:
        assert ContentExtractor.extract_text("") == ""
        assert ContentExtractor.extract_metadata("") == {}

    def test_metadata_fields(self, soup) -> None:
        metadata = ContentExtractor.extract_metadata(soup)

        assert metadata["title"] == "Acme Markets Review"
        assert metadata["description"] == "Low cost forex broker"
        assert metadata["keywords"] == "forex, cfd"
        assert metadata["og_title"] == "Acme Markets"
        assert metadata["twitter_card"] == "summary"
        assert metadata["canonical"] == "https://acme.example.com/review"
        assert metadata["language"] == "en-GB"

    def test_language_falls_back_to_meta_header(self) -> None:
        html = '<html><head><meta http-equiv="Content-Language" content="de"></head></html>'
        assert ContentExtractor.extract_metadata(html)["language"] == "de"


# ---------------------------------------------------------------------------
# Structured extraction
# ---------------------------------------------------------------------------


class TestStructuredExtraction:
    def test_json_ld_skips_malformed_blocks(self, soup) -> None:
        blocks = ContentExtractor.extract_json_ld(soup, url="https://acme.example.com")
        assert blocks == [{"@type": "Organization", "name": "Acme"}]

    def test_broker_signals_carry_context(self) -> None:
        signals = ContentExtractor.extract_broker_signals(
            "Tight spreads and high leverage on MT5."
        )

        assert set(signals) == {"spreads", "leverage", "platforms"}
        assert "tight spreads" in signals["spreads"][0]

    def test_broker_signals_empty_text(self) -> None:
        assert ContentExtractor.extract_broker_signals("") == {}

    def test_element_text(self, soup) -> None:
        found = ContentExtractor.extract_element_text(soup)
        assert found == {
            "regulation_text": "Authorized and regulated by the FCA",
            "spread_text": "EUR/USD 0.6",
        }

    def test_contact_deduplicated(self, soup) -> None:
        contact = ContentExtractor.extract_contact(soup)

        assert contact.emails == ["support@acme.example.com"]
        assert contact.phones == ["+442071234567"]
        assert contact.social_links == {
            "facebook": "https://facebook.com/acme",
            "linkedin": "https://www.linkedin.com/company/acme",
        }

    def test_ratings(self, soup) -> None:
        ratings = ContentExtractor.extract_ratings(soup)

        assert ratings["rating_0"]["score"] == 4.5
        assert ratings["rating_0"]["max"] == 5
        assert ratings["review_counts"] == ["1,234 reviews"]

    def test_structured_payload_shape(self, soup) -> None:
        payload = ContentExtractor.extract_structured_data(
            soup, "https://acme.example.com/review"
        ).to_dict()

        assert set(payload) == {
            "url",
            "extracted_at",
            "json_ld",
            "broker_specific",
            "contact",
            "ratings",
        }
        assert payload["url"] == "https://acme.example.com/review"
        assert (
            payload["broker_specific"]["regulation_text"] == "Authorized and regulated by the FCA"
        )
        assert "regulation" in payload["broker_specific"]
