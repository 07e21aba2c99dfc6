"""Value comparison, condition evaluation and logic-function factories."""
