"""
Unit Tests: Loss Functions
==========================

Run with: pytest tests/test_losses.py -v
"""

import logging
import math

import pytest

from scalargrad import (
    Value,
    cross_entropy_loss,
    mse,
    mse_loss,
    softmax,
    softmax_cross_entropy,
    topological_sort,
)

try:
    import torch
    TORCH_AVAILABLE = True
except ImportError:
    TORCH_AVAILABLE = False


class TestMSE:

    def test_single_prediction(self) -> None:
        pred = Value(1.5)
        loss = mse(pred, 2.0)
        assert loss.data == 0.25

        loss.backward()
        # d/dpred (y - pred)^2 = -2 (y - pred)
        assert pred.grad == -1.0

    def test_built_from_sub_and_mul(self) -> None:
        loss = mse(Value(1.0), Value(3.0))
        assert loss._op == '*'
        diff = loss._prev[0]
        assert diff._op == '-'
        assert loss._prev == (diff, diff)

    def test_mean_over_samples(self) -> None:
        preds = [Value(0.0), Value(0.0), Value(0.0)]
        loss = mse_loss(preds, [1.0, 2.0, 3.0])
        assert loss.data == pytest.approx(14 / 3)

        loss.backward()
        assert [p.grad for p in preds] == pytest.approx([-2 / 3, -4 / 3, -2.0])

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            mse_loss([Value(0.0)], [1.0, 2.0])


class TestSoftmax:

    def test_uniform_logits(self) -> None:
        probs = softmax([Value(1.0), Value(1.0), Value(1.0)])
        assert [p.data for p in probs] == pytest.approx([1 / 3] * 3)

    def test_sums_to_one_and_is_shift_invariant(self) -> None:
        logits = [1.0, -2.0, 0.5, 3.0]
        probs = softmax([Value(v) for v in logits])
        shifted = softmax([Value(v + 100.0) for v in logits])
        assert sum(p.data for p in probs) == pytest.approx(1.0)
        assert [p.data for p in probs] == pytest.approx([p.data for p in shifted])

    def test_large_logits_do_not_overflow(self) -> None:
        probs = softmax([Value(1000.0), Value(0.0)])
        assert probs[0].data == pytest.approx(1.0)
        assert probs[1].data >= 0.0

    def test_connected_to_every_logit(self) -> None:
        logits = [Value(0.1), Value(0.2), Value(0.3)]
        probs = softmax(logits)
        reachable = {id(n) for n in topological_sort(probs[0])}
        assert all(id(v) in reachable for v in logits)

    def test_shift_is_a_constant(self) -> None:
        logits = [Value(0.0), Value(2.0)]
        probs = softmax(logits)
        probs[1].backward()

        # d p1 / d z1 = p1 (1 - p1), d p1 / d z0 = -p0 p1
        p0, p1 = probs[0].data, probs[1].data
        assert logits[1].grad == pytest.approx(p1 * (1 - p1))
        assert logits[0].grad == pytest.approx(-p0 * p1)

    def test_empty(self) -> None:
        with pytest.raises(ValueError):
            softmax([])


class TestCrossEntropy:

    def test_uniform_scenario(self) -> None:
        probs = softmax([Value(1.0), Value(1.0), Value(1.0)])
        loss = cross_entropy_loss(probs, 0)
        assert loss.data == pytest.approx(math.log(3))

    def test_gradient_is_probs_minus_onehot(self) -> None:
        logits = [Value(0.5), Value(-1.0), Value(2.0)]
        probs = softmax(logits)
        loss = cross_entropy_loss(probs, 1)
        loss.backward()

        expected = [p.data - (1.0 if i == 1 else 0.0) for i, p in enumerate(probs)]
        assert [v.grad for v in logits] == pytest.approx(expected)

    @pytest.mark.parametrize("target", [3, -1, 10])
    def test_invalid_target_returns_error_marker(self, target: int, caplog) -> None:
        logits = [Value(0.5), Value(-1.0), Value(2.0)]
        with caplog.at_level(logging.WARNING, logger="scalargrad.losses"):
            loss = softmax_cross_entropy(logits, target)

        assert loss.is_error
        assert loss.data == 0.0
        assert "error marker" in caplog.text

        loss.backward()
        assert all(v.grad == 0.0 for v in logits)

    def test_zero_probability_is_poisoned(self) -> None:
        p0, p1 = Value(0.0), Value(1.0)
        loss = cross_entropy_loss([p0, p1], 0)
        assert math.isnan(loss.data)
        assert not loss.is_error

        loss.backward()
        assert p0.grad == 0.0


@pytest.mark.skipif(not TORCH_AVAILABLE, reason="PyTorch not installed")
class TestPyTorchComparison:

    def test_softmax_cross_entropy(self) -> None:
        raw = [0.3, -1.2, 2.5, 0.0]
        logits = [Value(v) for v in raw]
        loss = softmax_cross_entropy(logits, 2)
        loss.backward()

        t = torch.tensor(raw, dtype=torch.float64, requires_grad=True)
        loss_t = torch.nn.functional.cross_entropy(t.unsqueeze(0), torch.tensor([2]))
        loss_t.backward()

        assert loss.data == pytest.approx(loss_t.item())
        assert [v.grad for v in logits] == pytest.approx(t.grad.tolist())
