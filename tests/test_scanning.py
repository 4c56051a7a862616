import pytest
from pathlib import Path
from photo_indexer.metadata.extract import MetadataExtractor
from photo_indexer.models import MediaRecord
from photo_indexer.preview.generator import PreviewGenerator
from photo_indexer.scanning.filesystem import DirectoryScanner, ScanBudget, natural_sort_key

from conftest import StubProvider


def names(records):
    return [r.name for r in records]


def test_natural_sort_key_orders_numbers_and_case():
    values = ["img10.jpg", "IMG2.jpg", "img1.jpg", "Éclair.jpg", "apple.jpg"]
    assert sorted(values, key=natural_sort_key) == [
        "apple.jpg", "Éclair.jpg", "img1.jpg", "IMG2.jpg", "img10.jpg",
    ]


def test_scan_sorts_numeric_aware(tmp_path, make_image, scanner):
    for n in (10, 2, 1):
        make_image(tmp_path / f"img{n}.jpg")

    results = scanner.scan(tmp_path)
    assert names(results) == ["img1.jpg", "img2.jpg", "img10.jpg"]
    assert all(isinstance(r, MediaRecord) for r in results)
    assert all(r.path.is_absolute() for r in results)


def test_scan_skips_unsupported_extensions(tmp_path, make_image, scanner):
    make_image(tmp_path / "keep.png")
    # A real image hiding behind an unsupported extension is still ignored
    make_image(tmp_path / "photo.dat", fmt="PNG")
    (tmp_path / "notes.txt").write_text("hello")

    assert names(scanner.scan(tmp_path)) == ["keep.png"]


def test_scan_records_carry_metadata(tmp_path, make_image, preview_generator):
    make_image(tmp_path / "a.jpg")
    scanner = DirectoryScanner(
        previews=preview_generator,
        metadata=MetadataExtractor(providers=[StubProvider(latitude="37.0", longitude="-122.0")]),
    )

    [record] = scanner.scan(tmp_path)
    assert record.ext == "jpg"
    assert record.url.startswith("data:image/png;base64,")
    assert record.country == "United States"
    assert record.latitude == 37.0
    assert record.captured_at is not None


def test_scan_recurses_into_subdirectories(tmp_path, make_image, scanner):
    make_image(tmp_path / "root.jpg")
    make_image(tmp_path / "a" / "one.jpg")
    make_image(tmp_path / "a" / "b" / "two.jpg")

    results = scanner.scan(tmp_path)
    # Sorted by full path: ".../a/b/two.jpg" < ".../a/one.jpg" < ".../root.jpg"
    assert names(results) == ["two.jpg", "one.jpg", "root.jpg"]


def test_scan_respects_max_depth(tmp_path, make_image, preview_generator):
    make_image(tmp_path / "d0.jpg")
    make_image(tmp_path / "l1" / "d1.jpg")
    make_image(tmp_path / "l1" / "l2" / "d2.jpg")
    scanner = DirectoryScanner(previews=preview_generator,
                               metadata=MetadataExtractor(providers=[]),
                               max_depth=1)

    assert sorted(names(scanner.scan(tmp_path))) == ["d0.jpg", "d1.jpg"]


def test_scan_budget_is_shared_across_directories(tmp_path, make_image, preview_generator):
    make_image(tmp_path / "r1.jpg")
    make_image(tmp_path / "r2.jpg")
    make_image(tmp_path / "a" / "a1.jpg")
    make_image(tmp_path / "a" / "a2.jpg")
    make_image(tmp_path / "b" / "b1.jpg")
    scanner = DirectoryScanner(previews=preview_generator,
                               metadata=MetadataExtractor(providers=[]),
                               max_results=3)

    results = scanner.scan(tmp_path)
    # Root files first, then the first subdirectory in listing order
    assert names(results) == ["a1.jpg", "r1.jpg", "r2.jpg"]


def test_scan_cap_inside_single_directory(tmp_path, make_image, preview_generator):
    for n in range(6):
        make_image(tmp_path / f"p{n}.png")
    scanner = DirectoryScanner(previews=preview_generator,
                               metadata=MetadataExtractor(providers=[]),
                               max_results=4)

    assert len(scanner.scan(tmp_path)) == 4


def test_scan_fills_budget_past_failed_previews(tmp_path, make_image, preview_generator):
    for n in range(4):
        make_image(tmp_path / f"good{n}.jpg")
    heic = tmp_path / "aaa.heic"
    heic.write_bytes(b"not decodable")
    scanner = DirectoryScanner(previews=preview_generator,
                               metadata=MetadataExtractor(providers=[]),
                               max_results=3)

    results = scanner.scan(tmp_path)
    assert len(results) == 3
    assert "aaa.heic" not in names(results)


def test_one_failing_file_does_not_abort_scan(tmp_path, make_image, scanner, monkeypatch):
    make_image(tmp_path / "ok.jpg")
    make_image(tmp_path / "boom.jpg")

    original = PreviewGenerator.render

    def flaky(self, path, ext):
        if Path(path).name == "boom.jpg":
            raise RuntimeError("decoder crashed")
        return original(self, path, ext)

    monkeypatch.setattr(PreviewGenerator, "render", flaky)

    assert names(scanner.scan(tmp_path)) == ["ok.jpg"]


def test_scan_missing_root_is_empty(tmp_path, scanner):
    assert scanner.scan(tmp_path / "nope") == []


@pytest.mark.parametrize("workers", [1, 4])
def test_scan_is_repeatable(tmp_path, make_image, preview_generator, workers):
    for n in (3, 1, 2):
        make_image(tmp_path / "sub" / f"x{n}.gif", fmt="GIF")
    make_image(tmp_path / "top.bmp", fmt="BMP")
    scanner = DirectoryScanner(previews=preview_generator,
                               metadata=MetadataExtractor(providers=[]),
                               max_workers=workers)

    first = scanner.scan(tmp_path)
    second = scanner.scan(tmp_path)
    assert [r.path for r in first] == [r.path for r in second]
    assert names(first) == ["x1.gif", "x2.gif", "x3.gif", "top.bmp"]


def test_progress_called_per_record(tmp_path, make_image, scanner):
    make_image(tmp_path / "a.jpg")
    make_image(tmp_path / "b.jpg")
    seen = []

    scanner.scan(tmp_path, progress=seen.append)
    assert sorted(r.name for r in seen) == ["a.jpg", "b.jpg"]


def test_scan_budget_accounting():
    budget = ScanBudget(limit=2)
    rec = MediaRecord(name="a", path=Path("/a"), url="data:,", ext="jpg")

    assert budget.remaining == 2
    assert budget.accept(rec)
    assert budget.accept(rec)
    assert budget.exhausted
    assert not budget.accept(rec)
    assert len(budget.records) == 2
