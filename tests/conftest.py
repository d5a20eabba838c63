import pytest

PAST_EVENTS_HTML = (
    "<html><body><table>"
    "<tr><th>Name</th><th>Date</th><th>Format</th></tr>"
    '<tr><td><a href="/event/1">Alpha CTF</a></td>'
    "<td>15 Oct., 08:00 UTC — 17 Oct. 2023, 08:00 UTC</td>"
    "<td>On-line</td></tr>"
    '<tr><td><a href="/event/2">Beta CTF</a></td>'
    "<td>May 12, 2023 — May 14, 2023, CTF, Jeopardy</td></tr>"
    '<tr><td><a href="/event/3">Lonely CTF</a></td></tr>'
    "</table></body></html>"
)

WRITEUPS_HTML = (
    "<table>"
    "<tr><th>Event</th><th>Task</th><th>Tags</th><th>Team</th><th>Action</th></tr>"
    "<tr><td><a>Alpha CTF</a></td><td><a>heap-me</a></td>"
    "<td><span>pwn</span>\n\n<span>heap</span></td>"
    "<td><a>TeamX</a></td><td><a href='/writeup/1'>Read</a></td></tr>"
    "<tr><td><a>Beta CTF</a></td><td></td><td><a>crypto-1</a></td>"
    "<td><span>crypto</span>\n\n<span>rsa</span></td>"
    "<td><a>TeamY</a></td><td><a href='/writeup/2'>Read</a></td></tr>"
    "<tr><td><a>Short CTF</a></td><td>only two</td></tr>"
    "</table>"
)

LEADERBOARD_HTML = (
    "<table>"
    "<tr><th>Place</th><th>Team</th><th>Points</th><th>Country</th></tr>"
    "<tr><td>1</td><td><a>TeamX</a></td><td>1500</td><td>USA</td></tr>"
    "<tr><td>2</td><td><a>TeamY</a></td><td>1200</td><td>DEU</td></tr>"
    "<tr><td>3</td><td><a>TeamZ</a></td></tr>"
    "</table>"
)

RUNNING_RSS = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<rss version="2.0"><channel>'
    "<title>Feed Title</title><link>https://ctftime.org/</link>"
    "<description>Running events</description>"
    "<item><title>Event A</title><link>https://ctftime.org/event/10</link></item>"
    "<item><title>Event B</title><link>https://ctftime.org/event/11</link></item>"
    "</channel></rss>"
)

EMPTY_RSS = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<rss version="2.0"><channel><title>Feed Title</title></channel></rss>'
)


@pytest.fixture
def past_events_html():
    return PAST_EVENTS_HTML


@pytest.fixture
def writeups_html():
    return WRITEUPS_HTML


@pytest.fixture
def leaderboard_html():
    return LEADERBOARD_HTML


@pytest.fixture
def running_rss():
    return RUNNING_RSS


@pytest.fixture
def empty_rss():
    return EMPTY_RSS
