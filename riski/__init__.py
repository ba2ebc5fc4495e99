"""
RISKI: reactive parameter models for wiki-style pages.

Packages:
    riski.graph      - placeholder extraction and topological sort
    riski.model      - Parameter and Model types
    riski.registry   - per-page model registry and lookup precedence
    riski.pipeline   - two-pass page compiler
    riski.tags       - tag handler registry and the built-in tags
    riski.resolver   - sequential substitution + evaluation
    riski.sweep      - parameter sweeps for charts
    riski.services   - HTTP services (resolve, graph, pages)
    riski.client     - page state, document, batcher, sessions
"""

__version__ = "0.1.0"
