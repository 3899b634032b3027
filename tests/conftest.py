"""Shared fixtures: a small help project held in memory."""

from __future__ import annotations

import pytest

from helpsmith.backends.memory import InMemoryBackend
from helpsmith.config import Settings

TOC_HTML = """<!DOCTYPE html>
<html>
<head><title>Product Help</title></head>
<body>
<ul id="toc">
<li class="heading1 toc-folder" id="i1"><a class="heading1" id="a1" href="intro.htm" target="hmcontent"><span class="heading1" id="s1">Introduction</span></a>
<ul>
<li class="heading2 toc-page" id="i2"><a class="heading2" id="a2" href="install.htm" target="hmcontent"><span class="heading2" id="s2">Installation</span></a></li>
<li class="heading2 toc-page" id="i3"><a class="heading2" id="a3" href="setup.htm" target="hmcontent"><span class="heading2" id="s3">Setup guide</span></a></li>
</ul>
</li>
<li class="heading1 toc-page" id="i4"><a class="heading1" id="a4" href="faq.htm" target="hmcontent"><span class="heading1" id="s4">FAQ</span></a></li>
</ul>
</body>
</html>"""


def page(title: str, body: str, head: str = "") -> str:
    return (
        f"<!DOCTYPE html><html><head><title>{title}</title>{head}</head>"
        f"<body><div id=\"idheader\"><h1>{title}</h1></div>"
        f"<div id=\"innerdiv\">{body}</div></body></html>"
    )


def project_files() -> dict[str, str]:
    return {
        "hmcontent.htm": TOC_HTML,
        "intro.htm": page("Introduction", "<p>Welcome to the product.</p>"),
        "install.htm": page(
            "Installation",
            '<p>Download the installer and run it.</p><img src="images/setup.png">',
            '<link rel="stylesheet" href="default.css">',
        ),
        "setup.htm": page("Setup guide", "<p>Configure the database connection.</p>"),
        "faq.htm": page("FAQ", "<p>You can install the product again later.</p>"),
        "old.htm": page("Old page", "<p>Forgotten.</p>"),
        "default.css": "body { background: url('images/bg.png'); }",
        "images/setup.png": "png",
        "images/bg.png": "png",
        "images/unused.gif": "gif",
    }


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend(project_files())


@pytest.fixture
def settings() -> Settings:
    return Settings(index_wait_attempts=5, index_wait_interval_s=0.0)
