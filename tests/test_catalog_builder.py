import json

import pytest

from helm_patchwork.core.catalog_builder import build_catalog, load_catalog_entries, write_catalog
from helm_patchwork.errors import ConfigError
from helm_patchwork.models.catalog import CatalogEntry
from helm_patchwork.utils.encoding import sanitize

SOURCE = "docker.io/library/nginx:1.25"
TARGET = "ghcr.io/acme/nginx:1.25-patched"


def _vuln(vid, severity, fixed=""):
    return {"VulnerabilityID": vid, "PkgName": "pkg", "Severity": severity, "FixedVersion": fixed, "Title": vid}


def _report(dir_, ref, vulns, os_family="debian", os_name="12.5"):
    dir_.mkdir(parents=True, exist_ok=True)
    report = {
        "Metadata": {"OS": {"Family": os_family, "Name": os_name}},
        "Results": [{"Vulnerabilities": vulns}],
    }
    (dir_ / f"{sanitize(ref)}.json").write_text(json.dumps(report))


def test_fixed_is_before_minus_after(tmp_path):
    reports = tmp_path / "reports"
    _report(reports, SOURCE, [_vuln("CVE-1", "HIGH", "1"), _vuln("CVE-2", "LOW", "2"), _vuln("CVE-3", "")])
    _report(reports, TARGET, [_vuln("CVE-3", "")])

    catalog = build_catalog([CatalogEntry(name="nginx", source=SOURCE, target=TARGET)], reports, "ghcr.io/acme")

    assert catalog.summary.total_vulns_before == 3
    assert catalog.summary.total_vulns_after == 1
    assert catalog.summary.fixed_vulns == 2
    img = catalog.images[0]
    assert img.os == "debian 12.5"
    assert img.before_vulns.severity_counts == {"HIGH": 1, "LOW": 1, "UNKNOWN": 1}
    assert [v.id for v in img.vulnerabilities] == ["CVE-3"]


def test_missing_reports_count_as_zero_and_images_are_sorted(tmp_path):
    entries = [
        CatalogEntry(name="z", source="quay.io/z:1", target="ghcr.io/acme/z:1-patched"),
        CatalogEntry(name="a", source="docker.io/a:1", target=""),
    ]
    catalog = build_catalog(entries, tmp_path)
    assert [i.original_ref for i in catalog.images] == ["docker.io/a:1", "quay.io/z:1"]
    assert catalog.summary.to_dict() == {"totalImages": 2, "totalVulnsBefore": 0, "totalVulnsAfter": 0, "fixedVulns": 0}


def test_written_catalog_uses_camel_case_keys(tmp_path):
    catalog = build_catalog([CatalogEntry(name="n", source=SOURCE, target=TARGET)], None, "ghcr.io/acme")
    path = tmp_path / "site" / "catalog.json"
    write_catalog(catalog, path)
    data = json.loads(path.read_text())
    assert data["registry"] == "ghcr.io/acme"
    assert set(data["images"][0]) == {
        "id", "originalRef", "patchedRef", "os", "beforeVulns", "afterVulns", "vulnerabilities",
    }
    assert data["images"][0]["beforeVulns"] == {"total": 0, "severityCounts": {}}


def test_images_json_must_be_a_list(tmp_path):
    path = tmp_path / "images.json"
    path.write_text(json.dumps({"name": "x"}))
    with pytest.raises(ConfigError):
        load_catalog_entries(path)
    path.write_text(json.dumps([{"name": "x", "source": SOURCE, "target": TARGET}]))
    assert load_catalog_entries(path) == [CatalogEntry(name="x", source=SOURCE, target=TARGET)]
