"""
Tests for parameter loading and walk persistence.
"""

import json

import pytest

from rwalk_sim import Walk, utils


def test_save_and_load_walks(tmp_path):
    walks = [Walk([(0, 0), (1, 0), (1, 1)]), Walk([(5, 5), (5, 6)], times=[2, 4])]
    path = tmp_path / "out" / "walks.npz"
    utils.save_walks(path, walks, meta={"walker": "swg", "seed": 3})
    batch = utils.load_walks(path)
    assert len(batch) == 2
    assert batch.walks == walks
    assert batch.meta == {"walker": "swg", "seed": 3}

    with pytest.raises(FileExistsError):
        utils.save_walks(path, walks, overwrite=False)


def test_walks_round_trip_without_suffix(tmp_path):
    walks = [Walk([(0, 0), (0, 1)])]
    written = utils.save_walks(tmp_path / "walks", walks)
    assert written == tmp_path / "walks.npz"
    assert utils.load_walks(tmp_path / "walks").walks == walks
    with pytest.raises(FileExistsError):
        utils.save_walks(tmp_path / "walks", walks, overwrite=False)


def test_save_empty_batch(tmp_path):
    utils.save_walks(tmp_path / "empty.npz", [])
    assert utils.load_walks(tmp_path / "empty.npz").walks == []


def test_load_params_json(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"walker": "lw", "jump_probability": 0.2}))
    assert utils.load_params(path) == {"walker": "lw", "jump_probability": 0.2}


def test_load_params_toml(tmp_path):
    if utils.tomllib is None:
        pytest.skip("tomllib unavailable")
    path = tmp_path / "params.toml"
    path.write_text('walker = "msw"\nmax_step_size = 3\n')
    assert utils.load_params(path) == {"walker": "msw", "max_step_size": 3}


def test_load_params_unknown_format(tmp_path):
    path = tmp_path / "params.yaml"
    path.write_text("walker: swg\n")
    with pytest.raises(ValueError):
        utils.load_params(path)


def test_now_str_format():
    stamp = utils.now_str()
    assert len(stamp) == 15
    assert stamp[8] == "-"
