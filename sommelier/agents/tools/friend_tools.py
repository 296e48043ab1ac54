"""Sommelier tools over the user's contacts."""
from pydantic import AliasChoices, BaseModel, Field, field_validator

from sommelier.agents.tools.base import ToolErrorType, ToolName, ToolSpec, tool_error
from sommelier.database.models import PreferenceType
from sommelier.database.utils import normalize_string
from sommelier.inventory import ContactDirectory


class FriendPreferencesArgs(BaseModel):
    """Arguments of get_friend_preferences."""
    friend_name: str = Field(
        ..., validation_alias=AliasChoices("friend_name", "friendName"), description="Friend name (partial match)"
    )

    @field_validator("friend_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("friend_name must not be empty")
        return value


def build_friend_tools(contacts: ContactDirectory) -> list[ToolSpec]:
    """
    Build the contact tools.

    Args:
        contacts: Contact directory

    Returns:
        ToolSpec for get_friend_preferences
    """

    def get_friend_preferences(args: FriendPreferencesArgs, user_id: str) -> dict:
        needle = normalize_string(args.friend_name)
        friends = sorted(
            (f for f in contacts.friends_for(user_id) if needle in normalize_string(f.name)),
            key=lambda f: (normalize_string(f.name), f.id),
        )
        if not friends:
            return tool_error(f"Friend '{args.friend_name}' not found", ToolErrorType.NOT_FOUND)

        friend = friends[0]
        restrictions = {preference_type.value: [] for preference_type in PreferenceType}
        for preference in contacts.preferences_for(friend.id):
            restrictions[preference.type.value].append({
                "category": preference.category,
                "severity": preference.severity,
                "notes": preference.notes,
            })

        return {
            "friend": {
                "name": friend.name,
                "foodie_level": friend.foodie_level,
                "notes": friend.notes,
            },
            "restrictions": restrictions,
        }

    return [
        ToolSpec(
            name=ToolName.GET_FRIEND_PREFERENCES,
            description="Get the food preferences and dietary restrictions of one of the user's friends.",
            args_schema=FriendPreferencesArgs,
            handler=get_friend_preferences,
        ),
    ]
