#!/usr/bin/env python3
"""
SignSpeak - gesture model training and inspection.

Usage::

    signspeak stats                          # Dataset / model summary
    signspeak train                          # Fit static model from stored samples
    signspeak train --type logistic --iterations 300
    signspeak train-sequences --target-length 30
    signspeak evaluate --val-split 0.2       # Accuracy + confusion matrix

Global options: --config path/to/config.yaml, --store DIR, --debug
"""

import argparse
import json
import logging
import sys

from signspeak.data.store import DatasetStore, StorageConfig
from signspeak.errors import SignSpeakError
from signspeak.features.normalizer import FeatureConfig, FeatureNormalizer
from signspeak.persistence.codec import check_compatible
from signspeak.recognition.evaluation import evaluate, log_report, train_test_split
from signspeak.recognition.factory import classifier_from_record, create_classifier
from signspeak.recognition.knn import KNNConfig
from signspeak.recognition.logistic import LogisticConfig
from signspeak.recognition.sequence_classifier import (
    SequenceConfig,
    create_sequence_classifier,
    normalize_sequence_length,
)
from signspeak.utils.config import Config
from signspeak.utils.logger import setup_logging
from signspeak.utils.performance import Timer

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="signspeak",
        description="SignSpeak gesture classifier training and evaluation",
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Path to config.yaml")
    parser.add_argument("--store", type=str, default=None,
                        help="Storage directory (overrides storage.root)")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Train the static sign classifier")
    train.add_argument("--type", choices=["knn", "logistic"], default=None,
                       help="Classifier type (default: classifier.type)")
    train.add_argument("--k", type=int, default=None,
                       help="Neighbors for knn")
    train.add_argument("--lr", type=float, default=None,
                       help="Learning rate for logistic")
    train.add_argument("--iterations", type=int, default=None,
                       help="Gradient descent iterations for logistic")

    seq = sub.add_parser("train-sequences", help="Train the dynamic gesture classifier")
    seq.add_argument("--k", type=int, default=None,
                     help="Neighbors for DTW k-NN")
    seq.add_argument("--window-size", type=int, default=None,
                     help="DTW band half-width")
    seq.add_argument("--target-length", type=int, default=None,
                     help="Resample sequences to this many frames")

    ev = sub.add_parser("evaluate", help="Evaluate a classifier on stored samples")
    ev.add_argument("--val-split", type=float, default=0.0,
                    help="Hold out this fraction, train on the rest (0 = score stored model)")
    ev.add_argument("--seed", type=int, default=42,
                    help="Random seed for the split")
    ev.add_argument("--output", type=str, default=None,
                    help="Write the report as JSON to this path")

    sub.add_parser("stats", help="Show dataset and model statistics")

    return parser.parse_args(argv)


def _build_static_classifier(config: Config, args):
    classifier_type = getattr(args, "type", None) or config.get("classifier.type", "knn")
    if classifier_type == "knn":
        knn = KNNConfig.from_dict(config.get("classifier.knn", {}))
        if getattr(args, "k", None) is not None:
            knn.k = args.k
        return create_classifier("knn", k=knn.k)

    logistic = LogisticConfig.from_dict(config.get("classifier.logistic", {}))
    if getattr(args, "lr", None) is not None:
        logistic.learning_rate = args.lr
    if getattr(args, "iterations", None) is not None:
        logistic.iterations = args.iterations
    return create_classifier(
        "logistic", learning_rate=logistic.learning_rate, iterations=logistic.iterations,
    )


def cmd_train(config: Config, store: DatasetStore, args) -> int:
    X, y = store.get_all_samples()
    if not X:
        logger.error("No training samples found in %s", store.blobs.root)
        return 1

    normalizer = FeatureNormalizer(FeatureConfig.from_dict(config.features))
    classifier = _build_static_classifier(config, args)

    with Timer("fit") as t:
        classifier.fit(X, y)
    logger.info("Trained %r on %d samples in %.1fms", classifier, len(X), t.elapsed_ms)

    if classifier.feature_dim != normalizer.feature_dim:
        logger.warning(
            "Trained with %d features but the configured normalizer produces %d",
            classifier.feature_dim, normalizer.feature_dim,
        )

    store.save_model(classifier.export_model())
    logger.info("Model saved (%s, classes: %s)", classifier.TYPE, ", ".join(classifier.classes()))
    return 0


def cmd_train_sequences(config: Config, store: DatasetStore, args) -> int:
    seq_config = SequenceConfig.from_dict(config.sequence)
    if args.k is not None:
        seq_config.k = args.k
    if args.window_size is not None:
        seq_config.window_size = args.window_size
    if args.target_length is not None:
        seq_config.target_length = args.target_length

    sequences, labels = store.get_all_sequences()
    if not sequences:
        logger.error("No sequence samples found in %s", store.blobs.root)
        return 1

    if seq_config.target_length:
        sequences = [normalize_sequence_length(s, seq_config.target_length) for s in sequences]

    classifier = create_sequence_classifier("dtw", k=seq_config.k, window_size=seq_config.window_size)
    classifier.fit(sequences, labels)
    store.save_sequence_model(classifier.export_model())
    logger.info("Sequence model saved (%d sequences, classes: %s)",
                len(sequences), ", ".join(classifier.classes()))
    return 0


def cmd_evaluate(config: Config, store: DatasetStore, args) -> int:
    X, y = store.get_all_samples()
    if not X:
        logger.error("No samples to evaluate")
        return 1

    if args.val_split > 0:
        X_train, y_train, X_val, y_val = train_test_split(X, y, args.val_split, args.seed)
        classifier = _build_static_classifier(config, args)
        classifier.fit(X_train, y_train)
        logger.info("Train: %d samples, Val: %d samples", len(X_train), len(X_val))
    else:
        record = store.load_model()
        if record is None:
            logger.error("No trained model found. Run 'signspeak train' first.")
            return 1
        check_compatible(record, len(X[0]))
        classifier = classifier_from_record(record)
        X_val, y_val = X, y

    report = evaluate(classifier, X_val, y_val)
    log_report(report)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)
        logger.info("Report saved to: %s", args.output)
    return 0


def cmd_stats(config: Config, store: DatasetStore, args) -> int:
    stats = store.stats()
    seq_stats = store.sequence_stats()

    logger.info("=" * 50)
    logger.info("Static samples: %d (%d labels), model: %s",
                stats["sample_count"], stats["label_count"],
                "yes" if stats["has_model"] else "no")
    for label, count in sorted(store.sample_counts().items()):
        logger.info("  %-14s %5d", label, count)

    logger.info("Sequences: %d (%d labels, avg %d frames), model: %s",
                seq_stats["sample_count"], seq_stats["label_count"],
                seq_stats["avg_sequence_length"],
                "yes" if seq_stats["has_model"] else "no")
    for label, count in sorted(store.sequence_sample_counts().items()):
        logger.info("  %-14s %5d", label, count)
    logger.info("=" * 50)
    return 0


COMMANDS = {
    "train": cmd_train,
    "train-sequences": cmd_train_sequences,
    "evaluate": cmd_evaluate,
    "stats": cmd_stats,
}


def main(argv=None) -> int:
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    log_cfg = config.get_section("logging")
    setup_logging(
        level="DEBUG" if args.debug else log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    storage = StorageConfig.from_dict(config.storage)
    if args.store:
        storage.root = args.store
    store = DatasetStore.from_config(storage)

    try:
        return COMMANDS[args.command](config, store, args)
    except SignSpeakError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
