# PDF rendering and signature stamping
from legen.documents.renderer import DocumentRenderer as DocumentRenderer
from legen.documents.renderer import render as render
from legen.documents.stamper import count_pages as count_pages
from legen.documents.stamper import stamp as stamp

__all__ = ["DocumentRenderer", "count_pages", "render", "stamp"]
