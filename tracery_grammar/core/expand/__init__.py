"""Rule-string expansion.

``syntax`` turns a rule string into text, reference and binding nodes;
``grammar`` walks those nodes against a rule table, a modifier registry and
a pluggable selector to produce the flattened text.
"""
