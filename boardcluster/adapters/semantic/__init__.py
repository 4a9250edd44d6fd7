from boardcluster.adapters.semantic.embedding_cosine import EmbeddingSemanticSimilarity
from boardcluster.adapters.semantic.lexical import LexicalSemanticSimilarity

__all__ = ["EmbeddingSemanticSimilarity", "LexicalSemanticSimilarity"]
