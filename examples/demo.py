#!/usr/bin/env python3
"""
scalargrad Demo: Training a Classifier from Scratch
===================================================

This demo shows the complete workflow:
1. Compute gradients of a small expression and print its graph
2. Build an MLP on top of the scalar autograd engine
3. Train it with softmax cross-entropy and SGD with learning-rate decay
4. Plot the loss curve

The default dataset is a synthetic 3-class problem. Pass --mnist DIR to
train on a subset of MNIST instead (DIR holds the standard IDX files).

Run: python examples/demo.py [--mnist DIR] [--epochs N]
"""

import argparse
import logging
import math
from typing import List, Tuple

import matplotlib.pyplot as plt
import numpy as np

from scalargrad import MLP, SGD, Value, draw_graph, no_grad, softmax_cross_entropy
from scalargrad.datasets import load_mnist


def make_blobs(
    n_samples: int = 90,
    n_classes: int = 3,
    noise: float = 0.3,
    seed: int = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gaussian blobs placed evenly on the unit circle, one per class.

    Returns:
        X: Features array of shape (n_samples, 2)
        y: Integer labels of shape (n_samples,)
    """
    rng = np.random.default_rng(seed)
    y = np.arange(n_samples) % n_classes
    angles = 2 * np.pi * y / n_classes
    centers = np.column_stack([np.cos(angles), np.sin(angles)])
    X = centers + rng.normal(scale=noise, size=centers.shape)
    return X, y


def predict(model: MLP, x: np.ndarray) -> int:
    """Index of the largest logit (evaluated without recording a graph)."""
    with no_grad():
        logits = model([Value(float(v)) for v in x])
    return int(np.argmax([v.data for v in logits]))


def accuracy(model: MLP, X: np.ndarray, y: np.ndarray) -> float:
    correct = sum(predict(model, xi) == yi for xi, yi in zip(X, y))
    return correct / len(y)


def train_batch(
    model: MLP,
    optimizer: SGD,
    X: np.ndarray,
    y: np.ndarray,
    batch: np.ndarray
) -> Tuple[float, int, int]:
    """
    One SGD step over a mini-batch.

    Samples whose loss is an error marker or NaN are skipped, and each
    remaining loss is scaled by 1 / (number of remaining samples).

    Returns:
        (summed loss, samples used, samples skipped)
    """
    valid = []
    for i in batch:
        logits = model([Value(float(v)) for v in X[i]])
        loss = softmax_cross_entropy(logits, int(y[i]))
        if loss.is_error or math.isnan(loss.data):
            continue
        valid.append(loss)

    optimizer.zero_grad()
    for loss in valid:
        (loss * (1.0 / len(valid))).backward()
    if valid:
        optimizer.step()
    return sum(loss.data for loss in valid), len(valid), len(batch) - len(valid)


def train(
    model: MLP,
    X: np.ndarray,
    y: np.ndarray,
    epochs: int = 20,
    lr: float = 0.1,
    lr_decay: float = 0.9,
    batch_size: int = 10,
    seed: int = 0
) -> List[float]:
    """
    Mini-batch training loop.

    Per-sample gradients are accumulated into the parameters over a batch
    and averaged over the samples that produced a usable loss.

    Returns:
        Mean loss per epoch.
    """
    optimizer = SGD(model.parameters(), lr=lr, lr_decay=lr_decay)
    rng = np.random.default_rng(seed)
    losses = []

    for epoch in range(epochs):
        order = rng.permutation(len(X))
        total, counted, skipped = 0.0, 0, 0

        for start in range(0, len(order), batch_size):
            batch_total, batch_counted, batch_skipped = train_batch(
                model, optimizer, X, y, order[start:start + batch_size]
            )
            total += batch_total
            counted += batch_counted
            skipped += batch_skipped

        losses.append(total / max(counted, 1))
        acc = accuracy(model, X, y)
        print(
            f"Epoch {epoch + 1:3d} | Loss: {losses[-1]:.4f} | "
            f"Accuracy: {acc:.2%} | lr: {optimizer.lr:.4f} | skipped: {skipped}"
        )
        optimizer.decay()

    return losses


def plot_loss_curve(losses: List[float], path: str = './loss_curve.png') -> None:
    plt.figure(figsize=(10, 6))
    plt.plot(losses, 'b-', linewidth=2)
    plt.xlabel('Epoch')
    plt.ylabel('Cross-entropy')
    plt.title('Training Loss Curve')
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    print(f"Saved loss curve to: {path}")


def demo_gradient_computation() -> None:
    print("=" * 60)
    print("DEMO 1: Automatic Gradient Computation")
    print("=" * 60)

    x = Value(2.0, label='x')
    y = Value(3.0, label='y')
    z = x * y
    z.label = 'z=x*y'
    w = z + x
    w.label = 'w=z+x'
    out = w.tanh()
    out.label = 'out'
    out.backward()

    print("Expression: out = tanh(x*y + x) at x=2, y=3")
    print(f"  d(out)/dx = {x.grad:.6f}")
    print(f"  d(out)/dy = {y.grad:.6f}")
    print(draw_graph(out, format='text'))
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--mnist', metavar='DIR', help='directory with MNIST IDX files')
    parser.add_argument('--samples', type=int, default=200, help='MNIST subset size')
    parser.add_argument('--epochs', type=int, default=20)
    parser.add_argument('--lr', type=float, default=0.1)
    parser.add_argument('--lr-decay', type=float, default=0.9)
    parser.add_argument('--seed', type=int, default=0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    demo_gradient_computation()

    print("=" * 60)
    print("DEMO 2: Training a Classifier")
    print("=" * 60)
    if args.mnist:
        images, labels = load_mnist(args.mnist, train=True)
        X, y = images[:args.samples], labels[:args.samples]
        sizes = [32, 10]
    else:
        X, y = make_blobs(seed=args.seed)
        sizes = [16, 16, 3]

    model = MLP(X.shape[1], sizes, rng=np.random.default_rng(args.seed))
    print(f"{model} with {len(model.parameters())} parameters")
    losses = train(
        model, X, y,
        epochs=args.epochs, lr=args.lr, lr_decay=args.lr_decay, seed=args.seed
    )
    plot_loss_curve(losses)


if __name__ == "__main__":
    main()
