"""
Link and title extraction from static HTML.
Returns raw hrefs only; resolution and filtering happen in the normalizer and policy.
"""

from bs4 import BeautifulSoup, SoupStrainer

from sitepdf.interfaces import LinkExtractor, TitleExtractor, UNTITLED_PAGE

# Parse only <a href> when extracting links
LINK_STRAINER = SoupStrainer("a", href=True)
TITLE_STRAINER = SoupStrainer("title")


class SoupExtractor(LinkExtractor, TitleExtractor):
    def __init__(self, parser="lxml"):
        self.parser = parser

    def extract_anchors(self, body):
        soup = BeautifulSoup(body or "", self.parser, parse_only=LINK_STRAINER)
        hrefs = []
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            # In-page anchors never lead to another document
            if not href or href.startswith("#"):
                continue
            hrefs.append(href)
        # Keep document order, drop repeats
        return list(dict.fromkeys(hrefs))

    def extract_title(self, body):
        soup = BeautifulSoup(body or "", self.parser, parse_only=TITLE_STRAINER)
        tag = soup.find("title")
        if tag is None:
            return UNTITLED_PAGE
        title = " ".join(tag.get_text().split())
        return title or UNTITLED_PAGE
