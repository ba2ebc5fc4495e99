"""
Open a page in the client runtime and print what each widget shows.

Compiles the page in-process, opens a PageSession over the app's test
client, applies any choices, waits for resolution, and prints every
display and chart element.

Example (from repo root):
    python scripts/render_page.py --page Risks --select dropdown-1=1
    python scripts/render_page.py --page Risks --input miles_per_year=30000 --debug

No unicode (Windows charmap).
"""

import argparse
import os
import sys
from concurrent.futures import ThreadPoolExecutor

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..'))

from app import create_app
from riski.client.session import PageSession
from riski.client.transport import AppTransport


def main():
    ap = argparse.ArgumentParser(description="Render a RISKI page client-side.")
    ap.add_argument("--page", default="Risks")
    ap.add_argument("--url", default=None, help="Page URL, fragment included")
    ap.add_argument("--select", action="append", metavar="DROPDOWN=INDEX",
                    help="Choose a dropdown option (repeatable)")
    ap.add_argument("--input", action="append", metavar="KEY=VALUE",
                    help="Set a user input (repeatable)")
    ap.add_argument("--debug", action="store_true",
                    help="List missing names instead of fallback text")
    args = ap.parse_args()

    app = create_app()
    pages = app.extensions["riski"]["registry"].get("pages")
    compiled = pages.render_page(args.page, debug=args.debug)
    if compiled is None:
        print('No such page: %s' % args.page)
        return 1

    transport = AppTransport(app.test_client())
    with ThreadPoolExecutor(max_workers=1) as pool:
        session = PageSession(compiled, transport, url=args.url,
                              executor=pool, debug=args.debug)
        session.open()
        for item in args.select or []:
            dropdown_id, _, index = item.partition('=')
            session.select(dropdown_id, int(index))
        for item in args.input or []:
            key, _, value = item.partition('=')
            session.set_input(key, value)
    session.close()

    for widget in compiled.widgets:
        if widget["kind"] in ("display", "graph"):
            print('--- %s' % widget["id"])
            print(session.html(widget["id"]))
    print('--- state')
    for key, value in sorted(session.state.get_all().items()):
        print('%s = %r' % (key, value))
    print('--- shareable URL')
    print(session.state.get_shareable_url())
    return 0


if __name__ == '__main__':
    sys.exit(main())
