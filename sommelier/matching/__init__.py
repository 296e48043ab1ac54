from .models import MatchCandidate, MatchResult, MatchSignal, WineMention
from .matcher import EntityMatcher
from .wine_terms import infer_wine_type
from .extraction import ExtractedField, ExtractedWine, mention_from_extraction, resolve_extraction, split_grapes
from .suggestions import ParsedReply, SuggestionMatch, WineSuggestion, match_suggestions, parse_reply
