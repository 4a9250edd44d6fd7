"""Services: the similarity, clustering, labelling and evaluation pipeline."""
