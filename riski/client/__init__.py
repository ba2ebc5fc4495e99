"""
Client runtime: page state, document, display batching and charts.

These modules do in Python what a page's scripts do in the browser, so a
compiled page can be driven end to end (see PageSession).

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""
