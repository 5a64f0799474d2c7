import ezdxf
from ezdxf.enums import TextEntityAlignment

LAYERS = {
    'ZONES': 8,
    'RESTRICTED': 5,
    'WALLS': 7,
    'ENTRANCES': 1,
    'ILOTS': 3,
    'CORRIDORS': 4,
    'LABELS': 2,
}


class AnnotatedDXFExporter:
    def __init__(self, label_height: float = 0.3):
        self.label_height = label_height

    def export(self, result, filepath):
        """Write the plan, the ilots and the corridor network as a layered DXF drawing."""
        doc = ezdxf.new('R2010')
        for name, color in LAYERS.items():
            doc.layers.add(name, color=color)
        msp = doc.modelspace()

        plan = result.floor_plan
        for zone in plan.rooms:
            if len(zone.boundaries) >= 3:
                msp.add_lwpolyline(zone.boundaries, close=True, dxfattribs={'layer': 'ZONES'})
        for area in plan.restricted_areas:
            if len(area.boundaries) >= 3:
                msp.add_lwpolyline(area.boundaries, close=True, dxfattribs={'layer': 'RESTRICTED'})
        for wall in plan.walls:
            msp.add_line(wall.start, wall.end, dxfattribs={'layer': 'WALLS'})
        for entrance in plan.entrances:
            msp.add_circle(entrance.position, entrance.width / 2, dxfattribs={'layer': 'ENTRANCES'})

        # Ilots with their id and area
        for ilot in result.ilots:
            msp.add_lwpolyline(ilot.corners, close=True, dxfattribs={'layer': 'ILOTS'})
            self.add_label(msp, f"{ilot.id} {ilot.area:.1f}m²", ilot.center)

        for corridor in result.corridors:
            msp.add_lwpolyline(corridor.path, dxfattribs={'layer': 'CORRIDORS',
                                                          'const_width': corridor.width})

        doc.saveas(filepath)
        return doc

    def add_label(self, msp, text, position):
        label = msp.add_text(text, dxfattribs={'layer': 'LABELS', 'height': self.label_height})
        label.set_placement(position, align=TextEntityAlignment.MIDDLE_CENTER)
