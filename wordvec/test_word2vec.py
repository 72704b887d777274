import numpy as np
import pytest

from wordvec.data import (
    ContextWindows,
    Corpus,
    cbow_examples,
    discard_probabilities,
    discard_probability,
    partition_lines,
    skipgram_examples,
)
from wordvec.huffman import HuffmanTree
from wordvec.model import (
    Cbow,
    HierarchicalSoftmax,
    NegativeSampling,
    SharedWeights,
    SkipGram,
    _sigmoid,
)
from wordvec.sampling import NegativeSampleTable, smoothed_distribution
from wordvec.vocab import build_vocabulary, iter_token_lines

# Unit tests: vocabulary ids, Huffman codes, sampling table, subsampling, windows, strategies.


def _vocab(text, min_count=0, to_lower=False):
    return build_vocabulary(iter_token_lines(text.splitlines(), to_lower), min_count=min_count)


# --- vocabulary ---


def test_vocab_counts_for_small_corpus():
    vocab = _vocab("a b b c c c c")
    assert vocab.id_to_word == ["a", "b", "c"]
    np.testing.assert_array_equal(vocab.counts, [1, 2, 4])
    assert vocab.total == 7


def test_vocab_ids_dense_in_first_seen_order():
    vocab = _vocab("b a b c\na b d", min_count=2)
    assert vocab.id_to_word == ["b", "a"]
    assert sorted(vocab.word_to_id.values()) == list(range(len(vocab)))
    assert vocab.id_of("a") == 1 and vocab.word_of(0) == "b"
    assert "c" not in vocab


def test_vocab_lowercase_merges_tokens():
    vocab = _vocab("The the THE cat", to_lower=True)
    assert vocab.freq(vocab.id_of("the")) == 3
    assert "The" not in vocab


def test_vocab_empty_after_filter_raises():
    with pytest.raises(ValueError, match="Empty vocabulary"):
        _vocab("a b c", min_count=2)


def test_vocab_empty_input_raises():
    with pytest.raises(ValueError):
        _vocab("   \n\n")


def test_corpus_drops_oov_and_keeps_lines():
    corpus = Corpus.from_stream(["a b a x", "y", "b a"], min_count=2)
    assert len(corpus) == 2
    np.testing.assert_array_equal(corpus.lines[0], [0, 1, 0])
    assert corpus.n_tokens == 5


# --- Huffman tree ---


def test_huffman_concrete_case():
    tree = HuffmanTree.build([1, 2, 4])  # a, b, c
    assert tree.root.weight == 7
    assert tree.num_internal == 2
    # a(1) and b(2) merge first (node 0), then node 0 and c(4) form the root (node 1)
    assert tree.code(2) == "1"
    assert tree.code(0) == "00"
    assert tree.code(1) == "01"
    np.testing.assert_array_equal(tree.points[0], [1, 0])
    np.testing.assert_array_equal(tree.points[2], [1])


def test_huffman_tree_invariants():
    freqs = [5, 9, 12, 13, 16, 45, 1, 1]
    tree = HuffmanTree.build(freqs)
    assert tree.root.weight == sum(freqs)
    assert tree.num_internal == len(freqs) - 1
    codes = [tree.code(i) for i in range(len(freqs))]
    assert all(0 < len(c) < len(freqs) for c in codes)
    # prefix-free
    for i, a in enumerate(codes):
        for j, b in enumerate(codes):
            if i != j:
                assert not b.startswith(a)
    # every internal node index is used and in range
    used = set(np.concatenate(tree.points).tolist())
    assert used == set(range(tree.num_internal))
    # most frequent word has the shortest code
    assert len(codes[5]) == min(len(c) for c in codes)


def test_huffman_deterministic_with_ties():
    a = HuffmanTree.build([1, 1, 1, 1])
    b = HuffmanTree.build([1, 1, 1, 1])
    assert [a.code(i) for i in range(4)] == ["00", "01", "10", "11"]
    for i in range(4):
        np.testing.assert_array_equal(a.points[i], b.points[i])
        np.testing.assert_array_equal(a.codes[i], b.codes[i])


def test_huffman_max_depth_truncates_from_root():
    tree = HuffmanTree.build([1, 2, 4, 8, 16])
    points, codes = tree.path(0)
    assert len(points) == 4
    p2, c2 = tree.path(0, max_depth=2)
    np.testing.assert_array_equal(p2, points[:2])
    np.testing.assert_array_equal(c2, codes[:2])
    p0, _ = tree.path(0, max_depth=0)
    assert len(p0) == 4


def test_huffman_single_word():
    tree = HuffmanTree.build([3])
    assert tree.num_internal == 0
    assert len(tree.path(0)[0]) == 0


def test_huffman_empty_raises():
    with pytest.raises(ValueError):
        HuffmanTree.build([])


# --- negative sample table ---


def test_sample_table_converges_to_smoothed_distribution():
    counts = np.array([1, 10, 100, 5])
    table = NegativeSampleTable(counts, size=100_000)
    rng = np.random.default_rng(0)
    draws = table.draw(rng, 200_000)
    empirical = np.bincount(draws, minlength=len(counts)) / len(draws)
    np.testing.assert_allclose(empirical, smoothed_distribution(counts), atol=0.01)


def test_sample_table_runs_are_contiguous():
    table = NegativeSampleTable(np.array([3, 1, 2]), size=1000)
    assert len(table.table) == 1000
    assert np.all(np.diff(table.table) >= 0)


def test_sample_excludes_target_and_is_deterministic():
    table = NegativeSampleTable(np.array([100, 1, 1]), size=1000)
    s1 = table.sample(np.random.default_rng(3), 50, exclude=0)
    s2 = table.sample(np.random.default_rng(3), 50, exclude=0)
    assert len(s1) == 50
    assert not np.any(s1 == 0)
    np.testing.assert_array_equal(s1, s2)


def test_sample_single_word_has_no_negatives():
    table = NegativeSampleTable(np.array([7]), size=10)
    assert len(table.sample(np.random.default_rng(0), 5, exclude=0)) == 0


# --- subsampling and context windows ---


def test_discard_probability_bounds():
    t = 1e-3
    assert discard_probability(t, t) == 0.0
    assert discard_probability(t / 2, t) == 0.0
    p = discard_probability(10 * t, t)
    assert 0.0 < p < 1.0
    assert 0.0 < discard_probability(1.0, t) < 1.0
    assert discard_probability(0.5, 0.0) == 0.0


def test_discard_probabilities_matches_scalar():
    counts = np.array([1, 50, 500])
    probs = discard_probabilities(counts, 1000, 1e-2)
    for c, p in zip(counts, probs):
        assert np.isclose(p, discard_probability(c / 1000, 1e-2))


def test_windows_stop_at_line_boundaries():
    windows = list(ContextWindows(np.array([0, 1, 2, 3]), window=1))
    assert [w.target for w in windows] == [0, 1, 2, 3]
    np.testing.assert_array_equal(windows[0].context, [1])
    np.testing.assert_array_equal(windows[1].context, [0, 2])
    np.testing.assert_array_equal(windows[3].context, [2])


def test_windows_are_restartable():
    windows = ContextWindows(np.array([4, 2, 4, 1, 0]), window=2)
    first = [(w.target, w.context.tolist()) for w in windows]
    second = [(w.target, w.context.tolist()) for w in windows]
    assert first == second


def test_subsampling_skips_targets_not_context():
    ids = np.array([0, 1, 0, 1])
    discard = np.array([1.0, 0.0])  # word 0 always dropped as a target
    windows = list(ContextWindows(ids, window=1, discard=discard, rng=np.random.default_rng(0)))
    assert [w.position for w in windows] == [1, 3]
    np.testing.assert_array_equal(windows[0].context, [0, 0])


def test_subsampling_redraws_every_occurrence():
    ids = np.tile([0, 1], 10_000)
    discard = np.array([0.5, 0.0])
    windows = ContextWindows(ids, window=1, discard=discard, rng=np.random.default_rng(5))
    first = [w.position for w in windows]
    second = [w.position for w in windows]
    kept = np.array([ids[p] for p in first])
    # word 1 is never dropped, word 0 about half the time
    assert np.sum(kept == 1) == 10_000
    assert abs(np.sum(kept == 0) / 10_000 - 0.5) < 0.03
    assert first != second


def test_cbow_and_skipgram_expansion():
    windows = list(ContextWindows(np.array([0, 1, 2]), window=2))
    cbow = list(cbow_examples(windows))
    assert len(cbow) == 3
    pairs = list(skipgram_examples(windows))
    assert len(pairs) == sum(len(w.context) for w in windows) == 6
    assert (1, 0) in pairs and (1, 2) in pairs


def test_partition_lines_balanced_and_ordered():
    lines = [np.arange(n) for n in (5, 5, 5, 5, 10)]
    parts = partition_lines(lines, 3)
    assert len(parts) == 3
    flat = [line for part in parts for line in part]
    assert [len(x) for x in flat] == [5, 5, 5, 5, 10]
    assert all(len(p) > 0 for p in parts)


def test_partition_more_parts_than_lines():
    parts = partition_lines([np.arange(3)], 4)
    assert len(parts) == 4
    assert sum(len(p) for p in parts) == 1


# --- strategies ---


def test_sigmoid_stability():
    y = _sigmoid(np.array([-1000.0, 0.0, 1000.0]))
    assert np.all((y >= 0) & (y <= 1))
    assert np.isclose(y[1], 0.5)


def _weights(V, rows, D=8, seed=0):
    rng = np.random.default_rng(seed)
    w = SharedWeights(V, rows, D, rng)
    w.W_out = rng.standard_normal(w.W_out.shape) * 0.1
    return w


def _path_log_likelihood(tree, word, W_out, h):
    points, codes = tree.path(word)
    f = _sigmoid(W_out[points] @ h)
    return float(np.sum(np.log(np.where(codes == 0, f, 1.0 - f))))


def test_hierarchical_softmax_update_raises_path_likelihood():
    tree = HuffmanTree.build([1, 2, 4, 8])
    opt = HierarchicalSoftmax(tree)
    w = _weights(4, opt.output_rows(4))
    h = w.W_in[0].copy() * 10
    before = _path_log_likelihood(tree, 0, w.W_out, h)
    grad = opt.update(h, 0, 0.1, w, np.random.default_rng(0))
    assert grad.shape == h.shape
    assert _path_log_likelihood(tree, 0, w.W_out, h) > before


def test_hierarchical_softmax_touches_only_path_nodes():
    tree = HuffmanTree.build([1, 2, 4, 8])
    opt = HierarchicalSoftmax(tree, max_depth=1)
    w = _weights(4, opt.output_rows(4))
    before = w.W_out.copy()
    opt.update(np.ones(8), 0, 0.1, w, np.random.default_rng(0))
    changed = np.where(np.any(w.W_out != before, axis=1))[0]
    np.testing.assert_array_equal(changed, tree.path(0, max_depth=1)[0])


def test_negative_sampling_update_raises_true_score():
    table = NegativeSampleTable(np.array([5, 5, 5, 5]), size=100)
    opt = NegativeSampling(table, sample_size=3)
    w = _weights(4, opt.output_rows(4))
    h = np.ones(8)
    before = float(w.W_out[2] @ h)
    opt.update(h, 2, 0.1, w, np.random.default_rng(1))
    assert float(w.W_out[2] @ h) > before


def test_cbow_updates_only_context_rows():
    tree = HuffmanTree.build([3, 3, 3, 3, 3])
    opt = HierarchicalSoftmax(tree)
    w = _weights(5, opt.output_rows(5))
    before = w.W_in.copy()
    Cbow().update((0, np.array([1, 3])), w, opt, 0.1, np.random.default_rng(0))
    changed = np.where(np.any(w.W_in != before, axis=1))[0]
    np.testing.assert_array_equal(changed, [1, 3])
    # both context rows receive the same averaged gradient
    np.testing.assert_allclose(w.W_in[1] - before[1], w.W_in[3] - before[3])


def test_cbow_gradient_is_divided_by_context_size():
    tree = HuffmanTree.build([3, 3, 3, 3, 3])
    opt = HierarchicalSoftmax(tree)
    w = _weights(5, opt.output_rows(5))
    ref = _weights(5, opt.output_rows(5))
    before = w.W_in.copy()
    context = np.array([1, 3])
    hidden = before[context].mean(axis=0)
    grad = opt.update(hidden, 0, 0.1, ref, np.random.default_rng(0))
    Cbow().update((0, context), w, opt, 0.1, np.random.default_rng(0))
    np.testing.assert_allclose(w.W_in[1] - before[1], grad / 2)
    np.testing.assert_allclose(w.W_in[3] - before[3], grad / 2)
    np.testing.assert_allclose(w.W_out, ref.W_out)


def test_skipgram_updates_only_target_row():
    table = NegativeSampleTable(np.array([2, 2, 2]), size=30)
    opt = NegativeSampling(table, sample_size=2)
    w = _weights(3, opt.output_rows(3))
    before = w.W_in.copy()
    SkipGram().update((1, 2), w, opt, 0.1, np.random.default_rng(0))
    changed = np.where(np.any(w.W_in != before, axis=1))[0]
    np.testing.assert_array_equal(changed, [1])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
