"""Tests for the python -m mazerace entry point."""

from mazerace.__main__ import main


def test_headless_race(tmp_path, capsys) -> None:
    maze_file = tmp_path / "start.json"
    code = main([
        "--width", "11", "--height", "11",
        "--bots", "2",
        "--max-time", "60",
        "--shift-interval", "1000",
        "--models-dir", str(tmp_path / "models"),
        "--save-maze", str(maze_file),
        "--seed", "3",
    ])

    assert code == 0
    assert maze_file.exists()
    assert (tmp_path / "models" / "dqn-bot-0.pt").exists()
    out = capsys.readouterr().out
    assert "Race 1: winner bot-" in out


def test_replays_saved_maze(tmp_path, capsys) -> None:
    maze_file = tmp_path / "start.json"
    models = str(tmp_path / "models")
    assert main(["--width", "9", "--height", "9", "--max-time", "1",
                 "--models-dir", models, "--save-maze", str(maze_file), "--seed", "1"]) == 0
    assert main(["--maze", str(maze_file), "--max-time", "1", "--models-dir", models]) == 0
    assert "Loading maze from" in capsys.readouterr().out


def test_invalid_configuration(tmp_path) -> None:
    assert main(["--complexity", "2", "--models-dir", str(tmp_path)]) == 2


def test_missing_maze_file(tmp_path) -> None:
    assert main(["--maze", str(tmp_path / "nope.json"), "--models-dir", str(tmp_path)]) == 1
