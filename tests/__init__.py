"""
Test suite for QuranVerses.

Unit and integration tests for the content client, state store, verse
sequencer, refresh scheduler, widget bridge and app composition.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
"""
