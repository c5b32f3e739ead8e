# AutoMashup: Offline DJ-mashup synthesis engine
# Package: src.automashup

__version__ = "1.0.0.dev0"
__author__ = "AutoMashup Contributors"
__description__ = "Offline beat-aware mashup renderer for decoded audio tracks"

# Module structure:
#   - automashup.analyze    : Beat detection, tempo and energy descriptors
#   - automashup.generate   : Energy ordering & crossfade timeline planning
#   - automashup.render     : Offline signal chain rendering & WAV encoding
#   - automashup.fetch      : Source download and decoding
#   - automashup.mashup     : End-to-end mashup orchestration
#   - automashup.config     : Configuration management
