"""
Tweet router for short text posts published by users.
"""

import logfire

from fastapi import APIRouter, status, Query

from models.helpers import utc_now
from models.tweets import Tweet

from security.credentials import CurrentUser

from schema.responses import Page, api_response
from schema.tweets import TweetRequest, TweetResponse

from utils.exceptions import NotFound
from utils.validators import ensure_owner, require_text, to_object_id

from typing import Annotated

router = APIRouter(
    prefix="/api/v1/tweets",
    tags=["Tweets"],
)


async def _get_tweet(tweet_id: str) -> Tweet:
    tweet = await Tweet.get(to_object_id(tweet_id, "tweet id"))
    if tweet is None:
        raise NotFound("Tweet not found")
    return tweet


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tweet(payload: TweetRequest, current_user: CurrentUser):
    """Publish a tweet as the authenticated user."""
    tweet = Tweet(content=require_text(payload.content, "Content is required"), owner=current_user.id)
    await tweet.insert()

    logfire.info(f"Tweet {tweet.id} created by user {current_user.username}")
    return api_response(
        TweetResponse.model_validate(tweet).model_dump(mode="json", by_alias=True),
        "Tweet created successfully",
        status.HTTP_201_CREATED,
    )


@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: str,
    current_user: CurrentUser,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List the tweets of a user, newest first."""
    owner_id = to_object_id(user_id, "user id")

    tweets_query = Tweet.find(Tweet.owner == owner_id)
    total = await tweets_query.count()
    tweets = await tweets_query.sort(-Tweet.created_at).skip(offset).limit(limit).to_list()

    page = Page[TweetResponse](
        items=[TweetResponse.model_validate(tweet) for tweet in tweets],
        total=total,
        offset=offset,
        limit=limit,
    )
    return api_response(page.model_dump(mode="json", by_alias=True), "Tweets fetched successfully")


@router.patch("/{tweet_id}")
async def update_tweet(tweet_id: str, payload: TweetRequest, current_user: CurrentUser):
    """Edit a tweet owned by the caller.

    ## Possible Errors
    - 403 Forbidden: If the caller does not own the tweet.
    - 404 Not Found: If the tweet does not exist.
    """
    content = require_text(payload.content, "Content is required")

    tweet = await _get_tweet(tweet_id)
    ensure_owner(tweet.owner, current_user, "You can only edit your own tweets")

    await tweet.set({"content": content, "updated_at": utc_now()})

    return api_response(
        TweetResponse.model_validate(tweet).model_dump(mode="json", by_alias=True),
        "Tweet updated successfully",
    )


@router.delete("/{tweet_id}")
async def delete_tweet(tweet_id: str, current_user: CurrentUser):
    tweet = await _get_tweet(tweet_id)
    ensure_owner(tweet.owner, current_user, "You can only delete your own tweets")

    await tweet.delete()

    logfire.info(f"Tweet {tweet_id} deleted by user {current_user.username}")
    return api_response({}, "Tweet deleted successfully")
