from __future__ import annotations

import os

from vsearch.results import export_filename
from vsearch.utilities import safe_filename, unique_path


def test_unique_path_never_reuses_a_taken_name(tmp_path):
    paths = []
    for i in range(3):
        path = unique_path(str(tmp_path), export_filename("42"), "20261019_120000")
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"session {i}\n")
        paths.append(path)
    assert len(set(paths)) == 3
    assert sorted(os.listdir(tmp_path)) == sorted(os.path.basename(p) for p in paths)
    for i, path in enumerate(paths):
        with open(path, encoding="utf-8") as f:
            assert f.read() == f"session {i}\n"


def test_unique_path_free_name_is_unchanged(tmp_path):
    assert unique_path(str(tmp_path), "a.csv", "x") == os.path.join(str(tmp_path), "a.csv")


def test_safe_filename_strips_separators():
    assert safe_filename("../p 01") == "..p01"
