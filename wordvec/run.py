import argparse
from typing import List, Optional

from wordvec.config import ModelKind, OptimizerKind, Word2VecConfig
from wordvec.eval import print_nearest
from wordvec.train import Embeddings, Word2Vec

# Entry point: train on a file (or a small demo corpus) and optionally write vectors as text.
# Usage: python -m wordvec.run --file corpus.txt --model skip-gram --optimizer ns -o vectors.txt

DEMO_LINES = [
    "the quick brown fox jumps over the lazy dog",
    "the dog and the fox are animals",
    "quick animals jump over lazy dogs",
    "brown foxes and lazy dogs",
    "the quick brown fox runs",
    "the lazy dog sleeps",
] * 20


def build_parser() -> argparse.ArgumentParser:
    d = Word2VecConfig()
    ap = argparse.ArgumentParser(prog="wordvec", description="Train word2vec embeddings")
    ap.add_argument("-i", "--file", type=str, default=None, help="Input text, one sentence per line")
    ap.add_argument("-o", "--output", type=str, default=None, help="Write 'word v1 .. vD' lines here")
    ap.add_argument("-d", "--dimension", type=int, default=d.dimension)
    ap.add_argument("--iter", dest="iteration", type=int, default=d.iteration)
    ap.add_argument("--min-count", type=int, default=d.min_count)
    ap.add_argument("--thread", dest="thread_size", type=int, default=d.thread_size)
    ap.add_argument("-w", "--window", type=int, default=d.window)
    ap.add_argument("--initlr", dest="initial_learning_rate", type=float, default=d.initial_learning_rate)
    ap.add_argument("--lower", dest="to_lower", action="store_true", help="Lowercase tokens")
    ap.add_argument(
        "--model",
        type=str,
        default=d.model.value,
        help="|".join(m.value for m in ModelKind),
    )
    ap.add_argument(
        "--optimizer",
        type=str,
        default=d.optimizer.value,
        help="|".join(o.value for o in OptimizerKind) + " (or hs|ns)",
    )
    ap.add_argument("--batch-size", type=int, default=d.batch_size, help="Positions per lr update")
    ap.add_argument("--max-depth", type=int, default=d.max_depth, help="Huffman path cut-off (0 = none)")
    ap.add_argument("--sample", dest="negative_sample_size", type=int, default=d.negative_sample_size)
    ap.add_argument("--threshold", dest="subsample_threshold", type=float, default=d.subsample_threshold)
    ap.add_argument("--theta", type=float, default=d.theta, help="lr floor as fraction of initlr")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    ap.add_argument("--show", nargs="*", default=None, help="Print nearest neighbours of these words")
    return ap


def save_text(embeddings: Embeddings, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for word in embeddings.words:
            vec = " ".join(f"{x:.6f}" for x in embeddings[word])
            f.write(f"{word} {vec}\n")


def main(argv: Optional[List[str]] = None) -> None:
    """Parse flags into a Word2VecConfig, train, then save and/or print neighbours."""
    args = build_parser().parse_args(argv)
    options = {
        k: v for k, v in vars(args).items() if k not in ("file", "output", "show")
    }
    try:
        config = Word2VecConfig.create(**options)
        if args.file:
            w2v = Word2Vec.from_path(args.file, config)
        else:
            w2v = Word2Vec(DEMO_LINES, config)
    except (OSError, ValueError) as e:
        raise SystemExit(f"wordvec: {e}")
    embeddings = w2v.train()
    print(f"Trained {len(embeddings)} vectors of dimension {embeddings.dim}")

    if args.output:
        save_text(embeddings, args.output)
        print(f"Wrote {args.output}")
    query = args.show if args.show is not None else embeddings.words[:3]
    print_nearest(embeddings, query, k=5)


if __name__ == "__main__":
    main()
