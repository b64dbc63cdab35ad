"""Suspense grid — out-of-order streaming from file routes.

Demonstrates file routes (``index.py``, ``[slug].py``, ``404.py``,
``feed.xml.py``), suspense boundaries that settle at different times,
the include component, and public assets.

Run:
    rill run app:app
"""

from pathlib import Path

from rill import App, AppConfig

app = App(
    AppConfig(
        root=Path(__file__).parent,
        debug=True,
        suspense_max_ms=2000,
    )
)


if __name__ == "__main__":
    app.run(app_path="app:app")
