"""Min-cost flow algorithms for bounded worker/task assignment."""
