import json

import numpy as np
import yaml
from PIL import Image

from combinations import GeneratedSet
from dolls import generate, main


def test_generate_two_distinct_dolls(tmp_path, doll_data, make_config, doll_raw):
    config = make_config(doll_raw)
    output = tmp_path / "out"

    result = generate(
        config,
        data_path=doll_data,
        output_path=output,
        generator=np.random.default_rng(5),
    )

    assert list(result.combinations) == [1, 2]
    pairs = {tuple(item.index for item in c) for c in result.combinations.values()}
    assert len(pairs) == 2
    assert not result.shortfall

    backgrounds = [(255, 0, 0, 255), (0, 255, 0, 255)]
    hats = [(0, 0, 255, 255), (255, 255, 0, 255)]
    for doll_id, (bg, hat) in result.combinations.items():
        with Image.open(output / f"{doll_id}.png") as image:
            assert image.getpixel((0, 0)) == hats[hat.index]
            assert image.getpixel((3, 3)) == backgrounds[bg.index]

    assert [record["id"] for record in result.metadata] == [1, 2]
    assert sum(sum(row) for row in result.occurrences.to_list()) == 4


def test_generate_stops_when_space_exhausted(tmp_path, make_config, doll_raw):
    config = make_config(doll_raw)

    result = generate(config, count=5, skip_images=True, output_path=tmp_path / "out")

    assert len(result.combinations) <= 4
    assert result.shortfall
    assert not (tmp_path / "out").exists()


def test_generate_with_parts_and_offset(tmp_path, make_config, doll_raw):
    config = make_config(doll_raw)
    bg, hat = config.components
    parts = [(bg.items[0], hat.items[0]), (bg.items[1], hat.items[0]), (bg.items[1], hat.items[1])]

    generated = GeneratedSet()

    result = generate(config, parts, offset=1, skip_images=True, generated=generated)

    assert list(result.combinations) == [2, 3]
    assert [record["parts"] for record in result.metadata] == [[1, 0], [1, 1]]
    # precomputed parts never touch the generated set
    assert len(generated) == 0


def test_main_end_to_end(tmp_path, doll_data, doll_raw, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(doll_raw))
    monkeypatch.chdir(tmp_path)

    status = main(
        [
            "--config", str(config_path),
            "--data", str(doll_data),
            "--output", str(tmp_path / "out"),
            "--sequence",
            "--save-metadata", "metadata.json",
            "--metadata-dir", "items",
            "--save-csv", "traits.csv",
            "--save-statistics", "statistics.json",
        ]
    )

    assert status == 0
    assert (tmp_path / "out" / "1.png").exists()
    assert (tmp_path / "out" / "2.png").exists()
    records = json.loads((tmp_path / "metadata.json").read_text())
    assert [record["parts"] for record in records] == [[0, 0], [1, 1]]
    assert (tmp_path / "items" / "1").exists()
    assert (tmp_path / "traits.csv").exists()
    assert json.loads((tmp_path / "statistics.json").read_text()) == [[1, 1], [1, 1]]

    # replaying the metadata reproduces the same dolls
    status = main(
        [
            "--config", str(config_path),
            "--data", str(doll_data),
            "--load-metadata", "metadata.json",
            "--skip-images",
            "--save-statistics", "replayed.json",
        ]
    )
    assert status == 0
    assert json.loads((tmp_path / "replayed.json").read_text()) == [[1, 1], [1, 1]]


def test_main_reports_configuration_errors(tmp_path, doll_raw, monkeypatch):
    doll_raw["layers"].append({"folder": "Shoes"})
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(doll_raw))
    monkeypatch.chdir(tmp_path)

    assert main(["--config", str(config_path), "--skip-images"]) == 1


def test_main_reports_malformed_weights(tmp_path, doll_raw, monkeypatch):
    doll_raw["components"][0]["items"][0]["weight"] = None
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(doll_raw))
    monkeypatch.chdir(tmp_path)

    assert main(["--config", str(config_path), "--skip-images"]) == 1
