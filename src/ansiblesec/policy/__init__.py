"""Policy rules — models, loading and evaluation."""
