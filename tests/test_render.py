import os

from PIL import Image

from qrflyers.config import FlyerConfig
from qrflyers.manifest import Manifest, write_manifest
from qrflyers.render import QrBatchRenderer, render_qr_codes


def recording_encoder(calls, fail_on=()):
    def encode(data, output_path):
        if data in fail_on:
            raise IOError(f"cannot encode {data}")
        calls.append((data, os.path.basename(output_path)))
        with open(output_path, 'wb') as f:
            f.write(b"png")
    return encode


def test_renders_one_transparent_png_per_identifier(qr_dir, small_config):
    manifest = Manifest(base_url="https://example.com/x", url_params="?t=1",
                        hash=("id-a", "id-b", "id-c"))

    assert render_qr_codes(manifest, qr_dir, small_config) == 3
    assert sorted(os.listdir(qr_dir)) == ["qr_1.png", "qr_2.png", "qr_3.png"]
    with Image.open(os.path.join(qr_dir, "qr_1.png")) as img:
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0))[3] == 0


def test_encodes_target_urls_in_manifest_order(qr_dir):
    calls = []
    manifest = Manifest(base_url="https://example.com/x", url_params="?t=1",
                        hash=("id-a", "id-b", "id-c"))

    QrBatchRenderer(encoder=recording_encoder(calls)).render(manifest, qr_dir)

    assert calls == [
        ("https://example.com/x/id-a?t=1", "qr_1.png"),
        ("https://example.com/x/id-b?t=1", "qr_2.png"),
        ("https://example.com/x/id-c?t=1", "qr_3.png"),
    ]


def test_failed_item_is_skipped_and_batch_continues(qr_dir, capsys):
    calls = []
    manifest = Manifest(base_url="https://example.com/x", hash=("a", "b", "c", "d"))
    renderer = QrBatchRenderer(encoder=recording_encoder(calls, fail_on={"https://example.com/x/b"}))

    assert renderer.render(manifest, qr_dir) == 3
    assert sorted(os.listdir(qr_dir)) == ["qr_1.png", "qr_3.png", "qr_4.png"]
    assert [(p, d) for p, d, _ in renderer.failures] == [(2, "https://example.com/x/b")]
    assert "#2" in capsys.readouterr().out


def test_short_base_url_renders_nothing(qr_dir, capsys):
    calls = []
    manifest = Manifest(base_url="http://x", hash=("a",))

    assert QrBatchRenderer(encoder=recording_encoder(calls)).render(manifest, qr_dir) == 0
    assert calls == []
    assert not os.path.exists(qr_dir)
    assert "'baseUrl'" in capsys.readouterr().out


def test_empty_hash_renders_nothing(qr_dir, capsys):
    manifest = Manifest(base_url="https://example.com/x", hash=())

    assert QrBatchRenderer(encoder=recording_encoder([])).render(manifest, qr_dir) == 0
    assert "must contain a property named 'hash'" in capsys.readouterr().out


def test_render_file_soft_fails_on_missing_hash(tmp_path, qr_dir, capsys):
    path = tmp_path / "m.json"
    path.write_text('{"baseUrl": "https://example.com/x"}')

    assert QrBatchRenderer(encoder=recording_encoder([])).render_file(str(path), qr_dir) == 0
    assert "'hash'" in capsys.readouterr().out


def test_render_file_reads_manifest(tmp_path, qr_dir):
    path = str(tmp_path / "m.json")
    write_manifest(path, ["a", "b"], "https://example.com/x", "")
    calls = []

    assert QrBatchRenderer(encoder=recording_encoder(calls)).render_file(path, qr_dir) == 2
    assert [name for _, name in calls] == ["qr_1.png", "qr_2.png"]


def test_parallel_rendering_keeps_positional_names(qr_dir):
    calls = []
    identifiers = tuple(f"id-{i}" for i in range(1, 13))
    manifest = Manifest(base_url="https://example.com/x", hash=identifiers)
    renderer = QrBatchRenderer(FlyerConfig(render_workers=4), encoder=recording_encoder(calls))

    assert renderer.render(manifest, qr_dir) == 12
    assert sorted(calls, key=lambda c: int(c[1][3:-4])) == [
        (f"https://example.com/x/id-{i}", f"qr_{i}.png") for i in range(1, 13)
    ]
