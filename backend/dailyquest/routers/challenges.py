from fastapi import APIRouter, Depends

from dailyquest.schemas.challenge import ChallengeResponse
from dailyquest.state import GameState, get_state

router = APIRouter()


@router.get("/challenges", response_model=list[ChallengeResponse])
async def list_challenges(state: GameState = Depends(get_state)):
    """
    Today's challenges.

    The first call of a new day generates a fresh set and discards every
    session and all progress from the previous day.
    """
    return [ChallengeResponse.from_challenge(c) for c in state.challenges()]
