"""Seed packs for the hazard and control libraries, keyed by pack kind."""
from typing import Any, Dict, List

PACK_KINDS = ("industry", "workMethod", "jurisdiction", "iso45001")

HAZARD_PACKS: Dict[str, List[Dict[str, Any]]] = {
    "industry": [
        {"code": "ELEC-001", "name": "Electric Shock", "category": "Electrical", "risk": "Critical",
         "description": "Contact with live conductors"},
        {"code": "HGT-001", "name": "Fall From Height", "category": "Heights", "risk": "High",
         "description": "Work at height without adequate protection"},
    ],
    "workMethod": [
        {"code": "HOT-001", "name": "Hot Work", "category": "Hot Work", "risk": "High",
         "description": "Welding/cutting/grinding ignition sources"},
        {"code": "CSP-001", "name": "Confined Space", "category": "Confined Space", "risk": "Critical",
         "description": "Atmospheric or engulfment hazards"},
    ],
    "jurisdiction": [
        {"code": "LEG-EL-001", "name": "Electrical Licensing Compliance", "category": "Legislation", "risk": "Medium",
         "description": "State-based electrical licensing and testing obligations"},
    ],
    "iso45001": [
        {"code": "MGT-CONS", "name": "Consultation & Participation", "category": "Management", "risk": "Low",
         "description": "Worker consultation requirements under ISO 45001"},
    ],
}

CONTROL_PACKS: Dict[str, List[Dict[str, Any]]] = {
    "industry": [
        {"code": "TR-EL-LVR-CPR", "title": "LVR + CPR", "type": "Training",
         "description": "Low Voltage Rescue + CPR competency", "reference": "AS/NZS 4836", "validity_days": 365},
        {"code": "DOC-SWMS-ELEC-GEN", "title": "SWMS - General Electrical", "type": "Document",
         "description": "Baseline electrical safe work method statement"},
        {"code": "PPE-ARC-GLOVES", "title": "Arc-rated Gloves", "type": "PPE",
         "description": "Appropriate class for task per arc flash study"},
        {"code": "INSP-HARNESS-6M", "title": "Harness Inspection", "type": "Inspection",
         "description": "Formal inspection of fall-arrest harness", "reference": "AS/NZS 1891", "validity_days": 180},
        {"code": "LIC-ESA-SPARKY", "title": "Electrical Worker Licence", "type": "Licence",
         "description": "State/Territory electrical worker licence"},
    ],
    "workMethod": [
        {"code": "TR-WAH", "title": "Working at Heights", "type": "Training", "validity_days": 730},
        {"code": "DOC-SWMS-WAH", "title": "SWMS - Working at Heights", "type": "Document"},
        {"code": "DOC-RESCUE-PLAN-WAH", "title": "Rescue Plan - Heights", "type": "Document"},
        {"code": "INSP-LANYARD-6M", "title": "Lanyard Inspection", "type": "Inspection", "validity_days": 180},
        {"code": "IND-CLIENT-GEN", "title": "Client Site Induction", "type": "Induction", "validity_days": 365},
    ],
    "jurisdiction": [
        {"code": "DOC-LEG-EL-TEST-TAG", "title": "Test & Tag Procedure", "type": "Document", "reference": "AS/NZS 3760"},
        {"code": "VER-RCD-TEST", "title": "RCD Test Record", "type": "Verification",
         "description": "Periodic verification and record of RCD tests", "validity_days": 180},
        {"code": "DOC-WHS-CONSULT", "title": "WHS Consultation Procedure", "type": "Document", "reference": "WHS Act s47-49"},
    ],
    "iso45001": [
        {"code": "DOC-ISO-POLICY", "title": "OH&S Policy", "type": "Document", "reference": "ISO 45001:2018 cl.5.2"},
        {"code": "DOC-ISO-COMPETENCE", "title": "Competence & Awareness Procedure", "type": "Document",
         "reference": "ISO 45001:2018 cl.7.2-7.3"},
        {"code": "VER-ISO-AUDIT", "title": "Internal Audit Record", "type": "Verification",
         "reference": "ISO 45001:2018 cl.9.2", "validity_days": 365},
    ],
}
