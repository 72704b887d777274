from wordvec.config import ModelKind, OptimizerKind, Word2VecConfig, build_config
from wordvec.data import ContextWindows, Corpus
from wordvec.huffman import HuffmanTree
from wordvec.sampling import NegativeSampleTable
from wordvec.train import Embeddings, Word2Vec, train_word2vec
from wordvec.vocab import Vocabulary, build_vocabulary

# Word2vec training engine in pure NumPy: CBOW / skip-gram with hierarchical softmax or
# negative sampling, trained by lock-free parallel SGD over worker threads.

__all__ = [
    "ContextWindows",
    "Corpus",
    "Embeddings",
    "HuffmanTree",
    "ModelKind",
    "NegativeSampleTable",
    "OptimizerKind",
    "Vocabulary",
    "Word2Vec",
    "Word2VecConfig",
    "build_config",
    "build_vocabulary",
    "train_word2vec",
]
