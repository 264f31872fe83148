from drapemesh import drapemesh

drapemesh(
    vector_path="data/coastline.geojson",
    raster_paths=[
        "data/N045E012/ALPSMLC30_N045E012_DSM.tif",
        "data/N045E013/ALPSMLC30_N045E013_DSM.tif"
    ],
    bbox=(12.3, 45.6, 13.9, 46.7),
    density=2000,
    target_crs="EPSG:32633",
    resolution=100,
    out_path="output/coast_bbox.ply",
    z_scale=2.0,
    verbose=True
)
