"""
Baseline Builder: full snapshots of the monitored SEO signals.
"""

import unittest

from conftest import PAGE_HTML, PAGE_URL
from baseline.extractor import BaselineExtractor, read_canonical, read_title
from baseline.models import Baseline, OpenGraph
from page.document import PageDocument


class TestBaselineExtractor(unittest.TestCase):
    def setUp(self):
        self.extractor = BaselineExtractor()

    def test_full_snapshot(self):
        baseline = self.extractor.generate(PageDocument(PAGE_HTML, PAGE_URL))

        self.assertEqual(baseline.page_url, PAGE_URL)
        self.assertEqual(baseline.title, "Home")
        self.assertEqual(baseline.h1, "Welcome to Acme")
        self.assertEqual(baseline.h2s, ("Widgets", "Gadgets"))
        self.assertEqual(baseline.meta_description, "Acme widgets for every workshop.")
        self.assertEqual(baseline.meta_robots, "index, follow")
        self.assertEqual(baseline.canonical, "https://shop.example.com/")
        self.assertEqual(baseline.hreflang, (
            ("en", "https://shop.example.com/"),
            ("de", "https://shop.example.com/de/"),
        ))
        self.assertEqual(baseline.schema_count, 2)
        self.assertEqual(baseline.schema_types, ("Organization", "WebSite", "BreadcrumbList"))
        self.assertEqual(baseline.open_graph.title, "Acme Widgets")
        self.assertEqual(baseline.open_graph.image, "https://shop.example.com/og.png")
        self.assertEqual(baseline.open_graph.description, "")

    def test_missing_elements_are_empty_strings(self):
        """Scenario: a bare page yields "" for every text signal, never None."""
        baseline = self.extractor.generate(PageDocument("<html><body><p>x</p></body></html>", PAGE_URL))

        for name in ("title", "h1", "meta_description", "meta_robots", "canonical"):
            self.assertEqual(getattr(baseline, name), "", name)
        self.assertEqual(baseline.h2s, ())
        self.assertEqual(baseline.hreflang, ())
        self.assertEqual(baseline.schema_count, 0)
        self.assertEqual(baseline.open_graph, OpenGraph())

    def test_invalid_json_ld_is_recorded_not_raised(self):
        html = """
        <head>
        <script type="application/ld+json">{"@type": "Product", </script>
        <script type="application/ld+json">{"name": "no type"}</script>
        <script type="application/ld+json">[{"@type": "FAQPage"}, {"@type": ["Article", "NewsArticle"]}]</script>
        </head>
        """
        baseline = self.extractor.generate(PageDocument(html, PAGE_URL))

        self.assertEqual(baseline.schema_count, 3)
        self.assertEqual(baseline.schema_types, ("Invalid", "Unknown", "FAQPage", "Article", "NewsArticle"))

    def test_title_whitespace_is_collapsed(self):
        document = PageDocument("<title>\n   Spring   Sale \n</title>", PAGE_URL)
        self.assertEqual(read_title(document), "Spring Sale")

    def test_relative_canonical_is_resolved(self):
        document = PageDocument('<link rel="canonical" href="/products/">', "https://shop.example.com/products/?ref=ad")
        self.assertEqual(read_canonical(document), "https://shop.example.com/products/")

    def test_meta_robots_name_is_case_insensitive(self):
        baseline = self.extractor.generate(PageDocument('<meta name="ROBOTS" content="noindex">', PAGE_URL))
        self.assertEqual(baseline.meta_robots, "noindex")

    def test_quick_signals(self):
        signals = self.extractor.quick_signals(PageDocument(PAGE_HTML, PAGE_URL))
        self.assertEqual(signals, ["Home", "Welcome to Acme", "index, follow"])


class TestBaselineSerialization(unittest.TestCase):
    def test_dict_round_trip_keeps_every_field(self):
        baseline = BaselineExtractor().generate(PageDocument(PAGE_HTML, PAGE_URL))

        restored = Baseline.from_dict(baseline.to_dict())

        self.assertEqual(restored, baseline)

    def test_from_dict_tolerates_missing_values(self):
        restored = Baseline.from_dict({"page_url": PAGE_URL, "title": None})
        self.assertEqual(restored.title, "")
        self.assertEqual(restored.schema_types, ())


if __name__ == "__main__":
    unittest.main()
