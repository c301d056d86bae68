"""Meeting transcript pipeline -- discovery, resolution, retrieval and normalization.

Provides CalendarDiscovery, JoinReferenceResolver and MeetingFinder for
locating a resolved online meeting from the user's calendar, and the
transcripts subpackage for listing, downloading and cleaning its WebVTT
transcript. TranscriptService ties them together for the API layer.
"""
