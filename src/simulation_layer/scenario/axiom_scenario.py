"""
Axiom City scenario content.
Scripted narrative events for the Event Engine.
"""

from typing import List

from src.simulation_layer.models import EventChoice, EventEffect, EventType, GameEvent


def create_default_events() -> List[GameEvent]:
    """Scripted pool drawn by the Event Engine when no advisory event is available."""
    return [
        GameEvent(
            id="cat-mayor",
            title="A Cat Runs for Mayor",
            description="A ginger tabby has collected enough paw-print signatures to appear on the ballot.",
            type=EventType.WEIRD,
            choices=(
                EventChoice(
                    label="Endorse the cat",
                    effect_description="+10 happiness, -$200 campaign costs",
                    effect=EventEffect(money=-200, happiness=10.0),
                ),
                EventChoice(
                    label="Disqualify it",
                    effect_description="-5 happiness",
                    effect=EventEffect(happiness=-5.0),
                ),
            ),
        ),
        GameEvent(
            id="tech-investor",
            title="Tech Investor Visits",
            description="A venture capitalist wants to build a campus if the city offers tax breaks.",
            type=EventType.OPPORTUNITY,
            choices=(
                EventChoice(
                    label="Offer incentives",
                    effect_description="-$1000 now, +30 residents, +5 education, shares up 10%",
                    effect=EventEffect(money=-1000, population=30, education=5.0, share_price_multiplier=1.1),
                ),
                EventChoice(
                    label="Decline politely",
                    effect_description="Nothing happens",
                    effect=EventEffect(),
                ),
            ),
        ),
        GameEvent(
            id="sinkhole",
            title="Sinkhole on Main Street",
            description="A sinkhole has opened downtown. Engineers want funding for emergency repairs.",
            type=EventType.DISASTER,
            choices=(
                EventChoice(
                    label="Fund repairs",
                    effect_description="-$800, +5 safety",
                    effect=EventEffect(money=-800, safety=5.0),
                ),
                EventChoice(
                    label="Put up a fence",
                    effect_description="-10 safety, -5 happiness",
                    effect=EventEffect(safety=-10.0, happiness=-5.0),
                ),
            ),
        ),
        GameEvent(
            id="ufo-festival",
            title="UFO Festival",
            description="Conspiracy enthusiasts want to hold a week-long festival in the city park.",
            type=EventType.WEIRD,
            choices=(
                EventChoice(
                    label="Welcome them",
                    effect_description="+$600 tourism, -5 safety",
                    effect=EventEffect(money=600, safety=-5.0),
                ),
                EventChoice(
                    label="Ban the festival",
                    effect_description="-3 happiness",
                    effect=EventEffect(happiness=-3.0),
                ),
            ),
        ),
        GameEvent(
            id="smuggling-ring",
            title="Smuggling Ring Uncovered",
            description="Police found a warehouse of untaxed goods. The ring offers a quiet settlement.",
            type=EventType.OPPORTUNITY,
            choices=(
                EventChoice(
                    label="Prosecute",
                    effect_description="-$300 legal fees, shadow economy shrinks, +5 safety",
                    effect=EventEffect(money=-300, shadow_economy=-0.05, safety=5.0),
                ),
                EventChoice(
                    label="Take the settlement",
                    effect_description="+$1500, shadow economy grows",
                    effect=EventEffect(money=1500, shadow_economy=0.08, safety=-5.0),
                ),
            ),
        ),
        GameEvent(
            id="trade-fair",
            title="Regional Trade Fair",
            description="Neighbouring towns invite the city's factories to an export fair.",
            type=EventType.OPPORTUNITY,
            choices=(
                EventChoice(
                    label="Send a delegation",
                    effect_description="-$400, supply chains improve",
                    effect=EventEffect(money=-400, supply_level=0.15),
                ),
                EventChoice(
                    label="Stay home",
                    effect_description="Nothing happens",
                    effect=EventEffect(),
                ),
            ),
        ),
        GameEvent(
            id="flu-outbreak",
            title="Flu Outbreak",
            description="A nasty flu is spreading. Doctors ask for a vaccination drive.",
            type=EventType.DISASTER,
            choices=(
                EventChoice(
                    label="Fund vaccinations",
                    effect_description="-$700, +3 happiness",
                    effect=EventEffect(money=-700, happiness=3.0),
                ),
                EventChoice(
                    label="Let it run its course",
                    effect_description="-20 residents, -8 happiness",
                    effect=EventEffect(population=-20, happiness=-8.0),
                ),
            ),
        ),
        GameEvent(
            id="meme-stock",
            title="City Bonds Go Viral",
            description="An internet forum has decided the city's shares are going to the moon.",
            type=EventType.WEIRD,
            choices=(
                EventChoice(
                    label="Ride the hype",
                    effect_description="Shares up 30%",
                    effect=EventEffect(share_price_multiplier=1.3),
                ),
                EventChoice(
                    label="Issue a sober statement",
                    effect_description="+2 education",
                    effect=EventEffect(education=2.0),
                ),
            ),
        ),
    ]
