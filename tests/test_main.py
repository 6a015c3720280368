import pytest

from main import build_simulation, run_benchmark, run_headless


@pytest.fixture
def sim():
    return build_simulation(sites=20, width=100.0, height=100.0, gravity=0.2, seed=9)


def test_build_simulation(sim):
    assert len(sim.pipes) > 0
    assert sim.gravity == pytest.approx(0.2)


def test_run_headless_prints_progress(sim, capsys):
    run_headless(sim, volume=20.0, frames=25)

    out = capsys.readouterr().out
    assert "Frame 0000" in out
    assert "Frame 0020" in out
    assert "Volume drift" in out
    assert sim.frame == 25


def test_run_benchmark_prints_summary(sim, capsys):
    run_benchmark(sim, volume=20.0, frames=10)

    out = capsys.readouterr().out
    assert "UPDATE BENCHMARK" in out
    assert "Steps per second" in out
