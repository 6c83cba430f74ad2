import logging

from config import ClientConfig
from local_store import LocalStore
from schemas import AgendaItem, Asset, Event

logger = logging.getLogger(__name__)

# Demo dataset, only written when nothing exists locally or remotely
SEED_EVENTS = [
    Event(
        id="1",
        title="Tech Horizon Summit 2024",
        description=(
            "An immersive dive into the future of AI and robotics. "
            "Join industry leaders for a weekend of innovation."
        ),
        date="2024-11-15T09:00",
        location="Moscone Center, SF",
        capacity=500,
        bookings=342,
        price=299,
        image_url="https://picsum.photos/800/400?random=1",
        status="published",
        tags=["Technology", "AI", "Networking"],
        agenda=[
            AgendaItem(time="09:00", title="Registration & Breakfast", description="Check-in and networking."),
            AgendaItem(time="10:00", title="Keynote: The Age of Agents", description="Opening remarks by CEO."),
        ],
    ),
    Event(
        id="2",
        title="Midnight Jazz Gala",
        description="A night of smooth jazz, fine dining, and charity fundraising.",
        date="2024-12-05T19:00",
        location="The Grand Ballroom",
        capacity=200,
        bookings=45,
        price=150,
        image_url="https://picsum.photos/800/400?random=2",
        status="draft",
        tags=["Music", "Gala", "Charity"],
    ),
]

SEED_ASSETS = [
    Asset(id="a1", type="image", name="logo-white.png", url="https://picsum.photos/100/100?random=10"),
]


def seed_demo_data(store: LocalStore) -> None:
    store.seed_data(SEED_EVENTS, SEED_ASSETS)
    logger.info("Seeded %d demo events", len(SEED_EVENTS))


def run_seed():
    store = LocalStore(ClientConfig.from_env().database_url)
    try:
        if store.get_all_events():
            print("Local store already has data. Skipping seed.")
            return
        seed_demo_data(store)
        print("Seed complete.")
    finally:
        store.close()


if __name__ == "__main__":
    run_seed()
