"""
SiteChat

Crawls a website with a headless browser, extracts its text into a
per-website corpus, and answers questions about that corpus with a
generative model grounded in the extracted text.

Features:
- Headless rendering with crawl4ai, serialized through a browser pool
- Crawl state machine with cancellation and swap-on-success recrawls
- Bounded breadth-first link following up to a website's crawl depth
- Bounded context assembly and grounded answers with a relevance score
- Append-only dialogue history
- Configurable via YAML/JSON and environment variables
"""

__version__ = "0.1.0"
