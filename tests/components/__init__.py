"""Component tests for SGF Flow.

This package contains detailed tests for each core component:
1. Header scanner - bounded metadata read (input/sgf_header.py)
2. Game tree parser - full SGF grammar (input/sgf_parser.py)
3. Move extractor - main line flattening (input/sgf_to_moves.py)
4. Liberty - group and liberty helpers (core/liberty.py)
5. Board simulator - replay with captures (core/board.py)
"""
