"""
socialdtn: social path-weight forwarding for delay-tolerant networks

Nodes meet transiently and must decide, with no end-to-end path, which
buffered messages to hand to which neighbour.

Core concepts:
- Long contacts make peers familiar
- Overlapping familiar sets grow a local community (K-Clique)
- Hop contact durations along community paths give a path weight
- Path weights drive a two-stage relay selection at every tick

Layers, leaves first: core → community → decision → routing.
sim, reports, analysis and viz sit on top for experiments.
"""

__version__ = "0.1.0"
