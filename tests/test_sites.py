from navdash.models import GroupWithSites, Site
from navdash.sites import (
    DEFAULT_CONFIGS,
    DEFAULT_ICON_API,
    extract_domain,
    filter_groups,
    icon_url,
    with_defaults,
)


def _site(**kwargs) -> Site:
    base = {"id": 1, "group_id": 1, "name": "Example", "url": "https://example.com"}
    base.update(kwargs)
    return Site(**base)


def test_extract_domain() -> None:
    assert extract_domain("https://www.github.com/user/repo") == "www.github.com"
    assert extract_domain("docs.python.org/3/") == "docs.python.org"
    assert extract_domain("http://localhost:8080/x") == "localhost"
    assert extract_domain("") is None


def test_icon_url_prefers_explicit_icon() -> None:
    assert icon_url(_site(icon="https://cdn/x.png")) == "https://cdn/x.png"


def test_icon_url_uses_template() -> None:
    assert icon_url(_site()) == DEFAULT_ICON_API.replace("{domain}", "example.com")
    assert icon_url(_site(), "https://icons/{domain}.ico") == "https://icons/example.com.ico"


def test_with_defaults_keeps_stored_values() -> None:
    merged = with_defaults({"site.title": "Home", "custom": "1"})
    assert merged["site.title"] == "Home"
    assert merged["custom"] == "1"
    assert merged["site.backgroundOpacity"] == DEFAULT_CONFIGS["site.backgroundOpacity"]


def test_filter_groups_matches_name_url_and_description() -> None:
    groups = [
        GroupWithSites(
            id=1,
            name="Dev",
            order_num=0,
            sites=(
                _site(id=1, name="GitHub", url="https://github.com"),
                _site(id=2, name="Tracker", url="https://bugs.local", description="Issue board"),
            ),
        ),
        GroupWithSites(id=2, name="Empty", order_num=1),
    ]

    assert [s.name for g in filter_groups(groups, "GITHUB") for s in g.sites] == ["GitHub"]
    assert [s.name for g in filter_groups(groups, "issue") for s in g.sites] == ["Tracker"]
    assert filter_groups(groups, "nothing") == []
    assert filter_groups(groups, "  ") == groups
