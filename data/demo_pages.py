"""
Demo content: a small risk page with its data sub-page and tables.

PAGES:
  Risks       - driving risk by vehicle and annual mileage: a model, an
                initial parameter, a vehicle dropdown, a display and a
                mileage chart.
  Risks/Data  - a Commute model used from Risks by bare name, through
                the "<page>/Data:<name>" lookup.

TABLES:
  Risks/Data:Vehicles - deaths per mile travelled, per vehicle type.
                        Rounded US figures, for illustration only.

IMPORTANT: No unicode characters (Windows charmap constraint).
"""

VEHICLES_TABLE = "Risks/Data:Vehicles"

VEHICLES = [
    {"vehicle": "Car", "deaths_per_mile": 7.3e-9},
    {"vehicle": "Motorcycle", "deaths_per_mile": 2.1e-7},
    {"vehicle": "Bus", "deaths_per_mile": 4.0e-10},
]

DATA_PAGE = """\
<riskmodel name="Commute"
           data-trips="{{ {days_per_year} * 2 }}"
           data-miles="{{ {trips} * {commute_miles} }}">
Commuting: {miles} miles a year.
</riskmodel>
"""

RISKS_PAGE = """\
<h2>Driving</h2>
<riskparameter>
miles_per_year=12000
days_per_year=230
</riskparameter>
<riskmodel name="Driving"
           data-yearly="{{ {miles_per_year} * {deaths_per_mile} }}"
           data-monthly="{{ {yearly} / 12 }}">
Your yearly chance of dying in a {vehicle}: {{ {yearly}|one_in }}.
</riskmodel>

<p><dropdown table="Vehicles" title="Vehicle" default="Car"/></p>
<riskdisplay model="Driving">
<pending>Choose a vehicle to see the risk.</pending>
</riskdisplay>

<riskgraph model="Driving" type="line">
x-axis: miles_per_year
x-min: 0
x-max: 50000
x-step: 5000
y-axis: {yearly}
title: Yearly risk by annual mileage
x-label: Miles per year
y-label: Chance of dying
</riskgraph>

<h2>Commuting</h2>
<riskdisplay model="Commute" data-commute_miles="15"></riskdisplay>
"""

DEMO_PAGES = [
    ("Risks/Data", DATA_PAGE),
    ("Risks", RISKS_PAGE),
]


def seed_demo(pages):
    """
    Store the demo tables and pages.

    Parameters
    ----------
    pages : PageService
        Saves each page (compile, store source, replace models).
    """
    pages.store.put_table(VEHICLES_TABLE, VEHICLES)
    for page_id, source in DEMO_PAGES:
        pages.save_page(page_id, source)
