from __future__ import annotations

import threading

import numpy as np

from conftest import BOTTLENECK_LENGTH, OVERLAP, STYLE_DIM, TILE_DIM, FakeStyleModels, random_image
from eztransfer.api import RunConfig, StyleTransfer
from eztransfer.errors import InferenceError, JobCancelled


def _run_config(**kwargs) -> RunConfig:
    kwargs.setdefault("show_progress", False)
    return RunConfig(
        tile_dim=TILE_DIM,
        overlap=OVERLAP,
        style_dim=STYLE_DIM,
        bottleneck_length=BOTTLENECK_LENGTH,
        **kwargs,
    )


def test_run_styles_a_single_image(fake_models, style_image) -> None:
    transfer = StyleTransfer(fake_models.predict, fake_models.transfer, config=_run_config())

    result = transfer.run(random_image(28, 28), style_image)

    assert result.success
    assert result.image.shape == (28, 28, 3)
    assert "ok" in repr(result)


def test_run_batch_keeps_input_order(style_image) -> None:
    models = FakeStyleModels()
    contents = [random_image(20 + 4 * i, 30, seed=i) for i in range(4)]

    with StyleTransfer(models.predict, models.transfer, config=_run_config()) as transfer:
        results = transfer.run_batch(contents, style_image, max_workers=3)
        expected = [transfer.run(content, style_image).image for content in contents]

    assert [r.image.shape for r in results] == [(20 + 4 * i, 30, 3) for i in range(4)]
    for result, image in zip(results, expected):
        assert result.success
        np.testing.assert_array_equal(result.image, image)
    # one bottleneck per job
    assert models.predict_calls == 8


def test_run_batch_of_nothing_is_empty(fake_models, style_image) -> None:
    transfer = StyleTransfer(fake_models.predict, fake_models.transfer, config=_run_config())
    assert transfer.run_batch([], style_image) == []


def test_failed_job_does_not_affect_its_neighbours(style_image) -> None:
    models = FakeStyleModels(fail_on_tile=0)
    transfer = StyleTransfer(models.predict, models.transfer, config=_run_config())

    results = transfer.run_batch([random_image(16, 16), random_image(16, 16)], style_image, max_workers=1)

    assert isinstance(results[0].error, InferenceError)
    assert results[1].success


def test_cancelled_batch_returns_placeholders(fake_models, style_image) -> None:
    cancel = threading.Event()
    cancel.set()
    transfer = StyleTransfer(
        fake_models.predict, fake_models.transfer, config=_run_config(fallback_color=(9, 9, 9))
    )

    results = transfer.run_batch([random_image(28, 28)] * 2, style_image, cancel_event=cancel)

    assert all(isinstance(r.error, JobCancelled) for r in results)
    assert all(np.all(r.image == 9) for r in results)
    assert fake_models.transfer_calls == 0


def test_context_manager_releases_models(fake_models) -> None:
    released: list[bool] = []

    with StyleTransfer(
        fake_models.predict,
        fake_models.transfer,
        config=_run_config(),
        on_close=lambda: released.append(True),
    ) as transfer:
        pass

    assert released == [True]
    assert transfer.models.closed
