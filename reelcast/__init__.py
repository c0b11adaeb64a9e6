"""
reelcast - narrated slideshow and talking-head composition

Turns a project's script and image prompts into three deliverables:
- a narrated slideshow timed to the synthesized voice track
- a lip-synced talking-head clip of the user's reference avatar
- a split-screen merge of the two

Video frames are produced by ffmpeg; every generative step is a remote call.
"""

__version__ = "0.3.0"
